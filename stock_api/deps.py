"""
stock_api.deps -- FastAPI dependencies.

One session per request (commit on success, rollback on any error), the
acting user from request headers, and a ``PeriodCloseWorkflow`` wired to
both.  Authentication itself happens upstream; this layer only trusts the
``X-User-Id`` and ``X-User-Role`` headers it is given.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generator
from uuid import UUID

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from stock_api.errors import InsufficientPermissionsError, NotAuthenticatedError
from stock_config import CloseConfig
from stock_kernel.db.engine import session_scope
from stock_kernel.domain.clock import Clock
from stock_services.workflow import PeriodCloseWorkflow

ROLE_RANKS: dict[str, int] = {
    "staff": 0,
    "supervisor": 1,
    "admin": 2,
}


@dataclass(frozen=True)
class Actor:
    user_id: UUID
    role: str


def get_db(request: Request) -> Generator[Session, None, None]:
    with session_scope(request.app.state.session_factory) as session:
        yield session


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_close_config(request: Request) -> CloseConfig:
    return request.app.state.close_config


def get_actor(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> Actor:
    if not x_user_id:
        raise NotAuthenticatedError("missing X-User-Id header")
    try:
        user_id = UUID(x_user_id)
    except ValueError as exc:
        raise NotAuthenticatedError("X-User-Id is not a valid UUID") from exc

    role = (x_user_role or "").lower()
    if role not in ROLE_RANKS:
        raise NotAuthenticatedError(f"unknown role {x_user_role!r}")
    return Actor(user_id=user_id, role=role)


def require_role(required: str) -> Callable[..., Actor]:
    """Dependency factory: the actor must hold ``required`` or a higher role."""
    required_rank = ROLE_RANKS[required]

    def dependency(actor: Actor = Depends(get_actor)) -> Actor:
        if ROLE_RANKS[actor.role] < required_rank:
            raise InsufficientPermissionsError(actor.role, required)
        return actor

    return dependency


require_supervisor = require_role("supervisor")
require_admin = require_role("admin")


def get_workflow(
    session: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    close_config: CloseConfig = Depends(get_close_config),
) -> PeriodCloseWorkflow:
    return PeriodCloseWorkflow(
        session,
        clock=clock,
        currency=close_config.currency,
        max_comment_length=close_config.max_comment_length,
    )
