"""Period administration, readiness, prices, close requests and roll-forward."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from stock_api.deps import (
    Actor,
    get_actor,
    get_close_config,
    get_workflow,
    require_admin,
    require_supervisor,
)
from stock_api.schemas import (
    ApprovalResponse,
    PeriodCreate,
    PeriodDetailResponse,
    PeriodLocationResponse,
    PeriodResponse,
    PeriodUpdate,
    PriceCopyResponse,
    PriceResponse,
    PricesSet,
    RollForwardRequest,
    RollForwardResponse,
)
from stock_config import CloseConfig
from stock_kernel.domain.catalog import PriceInput
from stock_kernel.domain.period import PeriodStatus
from stock_services._close_types import RollForwardOptions
from stock_services.workflow import PeriodCloseWorkflow

router = APIRouter(prefix="/periods", tags=["periods"])


@router.post("", response_model=PeriodResponse, status_code=status.HTTP_201_CREATED)
def create_period(
    body: PeriodCreate,
    actor: Actor = Depends(require_admin),
    workflow: PeriodCloseWorkflow = Depends(get_workflow),
):
    return workflow.period_service.create_period(
        name=body.name,
        start_date=body.start_date,
        end_date=body.end_date,
        actor_id=actor.user_id,
        status=body.status,
    )


@router.get("", response_model=list[PeriodResponse])
def list_periods(
    status_filter: PeriodStatus | None = Query(default=None, alias="status"),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    workflow: PeriodCloseWorkflow = Depends(get_workflow),
):
    return workflow.period_service.list_periods(
        status=status_filter, start_date=start_date, end_date=end_date,
    )


@router.get("/current", response_model=PeriodResponse | None)
def get_current_period(
    actor: Actor = Depends(get_actor),
    workflow: PeriodCloseWorkflow = Depends(get_workflow),
):
    return workflow.period_service.get_current_period()


@router.get("/{period_id}", response_model=PeriodDetailResponse)
def get_period(
    period_id: UUID,
    actor: Actor = Depends(get_actor),
    workflow: PeriodCloseWorkflow = Depends(get_workflow),
):
    return {
        "period": workflow.period_service.get_period(period_id),
        "locations": workflow.period_service.list_period_locations(period_id),
    }


@router.patch("/{period_id}", response_model=PeriodResponse)
def update_period(
    period_id: UUID,
    body: PeriodUpdate,
    actor: Actor = Depends(require_admin),
    workflow: PeriodCloseWorkflow = Depends(get_workflow),
):
    return workflow.period_service.update_period(
        period_id,
        name=body.name,
        start_date=body.start_date,
        end_date=body.end_date,
    )


@router.post("/{period_id}/open", response_model=PeriodResponse)
def open_period(
    period_id: UUID,
    actor: Actor = Depends(require_admin),
    workflow: PeriodCloseWorkflow = Depends(get_workflow),
):
    return workflow.period_service.open_period(period_id, actor.user_id)


# -------------------------
# Prices
# -------------------------


@router.get("/{period_id}/prices", response_model=list[PriceResponse])
def get_prices(
    period_id: UUID,
    actor: Actor = Depends(get_actor),
    workflow: PeriodCloseWorkflow = Depends(get_workflow),
):
    return workflow.price_service.get_prices(period_id)


@router.post("/{period_id}/prices", response_model=list[PriceResponse])
def set_prices(
    period_id: UUID,
    body: PricesSet,
    actor: Actor = Depends(require_admin),
    workflow: PeriodCloseWorkflow = Depends(get_workflow),
):
    prices = [PriceInput(item_id=p.item_id, price=p.price) for p in body.prices]
    return workflow.price_service.set_prices(period_id, prices, actor.user_id)


@router.post("/{period_id}/prices/copy", response_model=PriceCopyResponse)
def copy_prices_from_previous(
    period_id: UUID,
    actor: Actor = Depends(require_admin),
    workflow: PeriodCloseWorkflow = Depends(get_workflow),
):
    source, prices = workflow.price_service.copy_from_previous(period_id, actor.user_id)
    return {"source_period": source, "copied": len(prices), "prices": prices}


# -------------------------
# Readiness and close
# -------------------------


@router.patch(
    "/{period_id}/locations/{location_id}/ready",
    response_model=PeriodLocationResponse,
)
def mark_location_ready(
    period_id: UUID,
    location_id: UUID,
    actor: Actor = Depends(require_supervisor),
    workflow: PeriodCloseWorkflow = Depends(get_workflow),
):
    return workflow.readiness.mark_ready(period_id, location_id, actor.user_id)


@router.patch(
    "/{period_id}/locations/{location_id}/unready",
    response_model=PeriodLocationResponse,
)
def unmark_location_ready(
    period_id: UUID,
    location_id: UUID,
    actor: Actor = Depends(require_supervisor),
    workflow: PeriodCloseWorkflow = Depends(get_workflow),
):
    return workflow.readiness.unmark_ready(period_id, location_id, actor.user_id)


@router.post(
    "/{period_id}/close",
    response_model=ApprovalResponse,
    status_code=status.HTTP_201_CREATED,
)
def request_close(
    period_id: UUID,
    actor: Actor = Depends(require_admin),
    workflow: PeriodCloseWorkflow = Depends(get_workflow),
):
    return workflow.request_close(period_id, actor.user_id)


@router.post(
    "/{period_id}/roll-forward",
    response_model=RollForwardResponse,
    status_code=status.HTTP_201_CREATED,
)
def roll_forward(
    period_id: UUID,
    body: RollForwardRequest | None = None,
    actor: Actor = Depends(require_admin),
    workflow: PeriodCloseWorkflow = Depends(get_workflow),
    close_config: CloseConfig = Depends(get_close_config),
):
    body = body or RollForwardRequest()
    options = RollForwardOptions(
        name=body.name,
        end_date=body.end_date,
        copy_prices=(
            body.copy_prices
            if body.copy_prices is not None
            else close_config.default_copy_prices
        ),
    )
    return workflow.roll_forward(period_id, actor.user_id, options)
