"""Reconciliation entry: the figures a location must record before it can be marked ready."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends

from stock_api.deps import Actor, get_workflow, require_supervisor
from stock_api.schemas import ReconciliationResponse, ReconciliationSave, figures_payload
from stock_kernel.domain.reconciliation import (
    ReconciliationFigures,
    calculated_closing,
    variance,
)
from stock_services.workflow import PeriodCloseWorkflow

router = APIRouter(prefix="/reconciliations", tags=["reconciliations"])


@router.post("", response_model=ReconciliationResponse)
def save_reconciliation(
    body: ReconciliationSave,
    actor: Actor = Depends(require_supervisor),
    workflow: PeriodCloseWorkflow = Depends(get_workflow),
):
    figures = ReconciliationFigures(**figures_payload(body))
    saved = workflow.reconciliation_service.save(
        body.period_id, body.location_id, figures, actor.user_id,
    )
    return {
        "id": saved.id,
        "period_id": saved.period_id,
        "location_id": saved.location_id,
        "figures": asdict(saved.figures),
        "calculated_closing": calculated_closing(saved.figures),
        "variance": variance(saved.figures),
        "last_updated": saved.last_updated,
    }
