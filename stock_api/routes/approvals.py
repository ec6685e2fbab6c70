"""Approval review endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from stock_api.deps import Actor, get_actor, get_workflow, require_admin
from stock_api.schemas import ApprovalOutcomeResponse, ApprovalResponse, RejectRequest
from stock_services.workflow import PeriodCloseWorkflow

router = APIRouter(prefix="/approvals", tags=["approvals"])


@router.get("/{approval_id}", response_model=ApprovalResponse)
def get_approval(
    approval_id: UUID,
    actor: Actor = Depends(get_actor),
    workflow: PeriodCloseWorkflow = Depends(get_workflow),
):
    return workflow.gateway.get(approval_id)


@router.patch("/{approval_id}/approve", response_model=ApprovalOutcomeResponse)
def approve(
    approval_id: UUID,
    actor: Actor = Depends(require_admin),
    workflow: PeriodCloseWorkflow = Depends(get_workflow),
):
    return workflow.gateway.approve(approval_id, actor.user_id)


@router.patch("/{approval_id}/reject", response_model=ApprovalOutcomeResponse)
def reject(
    approval_id: UUID,
    body: RejectRequest | None = None,
    actor: Actor = Depends(require_admin),
    workflow: PeriodCloseWorkflow = Depends(get_workflow),
):
    comments = body.comments if body is not None else None
    return workflow.gateway.reject(approval_id, actor.user_id, comments)
