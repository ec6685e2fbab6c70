"""
BaseService -- common constructor for kernel services.

Responsibility:
    Holds the caller's SQLAlchemy ``Session`` and the injected ``Clock``.
    Concrete services persist with ``session.flush()`` and never commit.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Transaction boundaries belong to the caller (``session_scope()`` or
      the HTTP request dependency).  A service that commits would break
      the all-or-nothing guarantee of request-close and period close.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from stock_kernel.db.base import Base
from stock_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for kernel services.

    Contract:
        Receives an open ``Session`` and an optional ``Clock``.  Every
        timestamp a service writes comes from ``self._clock``.

    Non-goals:
        - Does NOT call ``session.commit()`` or ``session.rollback()``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self._clock = clock or SystemClock()
