"""Pydantic request and response schemas for the period close API."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from stock_kernel.domain.approval import ApprovalEntityType, ApprovalStatus
from stock_kernel.domain.period import PeriodLocationStatus, PeriodStatus


# ---------------------------------------------------------------------------
# Periods
# ---------------------------------------------------------------------------


class PeriodCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    start_date: date
    end_date: date
    status: PeriodStatus = PeriodStatus.DRAFT


class PeriodUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    start_date: date | None = None
    end_date: date | None = None


class PeriodResponse(BaseModel):
    id: uuid.UUID
    name: str
    start_date: date
    end_date: date
    status: PeriodStatus
    approval_id: uuid.UUID | None = None
    created_at: datetime | None = None
    closed_at: datetime | None = None

    model_config = {"from_attributes": True}


class PeriodLocationResponse(BaseModel):
    period_id: uuid.UUID
    location_id: uuid.UUID
    status: PeriodLocationStatus
    location_code: str | None = None
    location_name: str | None = None
    ready_at: datetime | None = None
    closed_at: datetime | None = None
    opening_value: Decimal | None = None
    closing_value: Decimal | None = None

    model_config = {"from_attributes": True}


class PeriodDetailResponse(BaseModel):
    period: PeriodResponse
    locations: list[PeriodLocationResponse]


# ---------------------------------------------------------------------------
# Prices
# ---------------------------------------------------------------------------


class PriceEntry(BaseModel):
    item_id: uuid.UUID
    price: Decimal = Field(gt=0)


class PricesSet(BaseModel):
    prices: list[PriceEntry] = Field(min_length=1)


class PriceResponse(BaseModel):
    id: uuid.UUID
    item_id: uuid.UUID
    period_id: uuid.UUID
    price: Decimal
    currency: str
    set_by: uuid.UUID | None = None
    set_at: datetime | None = None
    item_code: str | None = None
    item_name: str | None = None

    model_config = {"from_attributes": True}


class PriceCopyResponse(BaseModel):
    source_period: PeriodResponse
    copied: int
    prices: list[PriceResponse]


# ---------------------------------------------------------------------------
# Close workflow
# ---------------------------------------------------------------------------


class ApprovalResponse(BaseModel):
    id: uuid.UUID
    entity_type: ApprovalEntityType
    entity_id: uuid.UUID
    status: ApprovalStatus
    requested_by: uuid.UUID
    requested_at: datetime | None = None
    reviewed_by: uuid.UUID | None = None
    reviewed_at: datetime | None = None
    comments: str | None = None

    model_config = {"from_attributes": True}


class RejectRequest(BaseModel):
    comments: str | None = None


class LocationCloseResponse(BaseModel):
    location_id: uuid.UUID
    location_code: str
    location_name: str
    closing_value: Decimal
    item_count: int
    variance: Decimal | None = None


class PeriodCloseResponse(BaseModel):
    period_id: uuid.UUID
    approval_id: uuid.UUID
    closed_at: datetime
    total_locations: int
    total_closing_value: Decimal
    locations: list[LocationCloseResponse]


class ApprovalOutcomeResponse(BaseModel):
    approval: ApprovalResponse
    result: PeriodCloseResponse | None = None


class RollForwardRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    end_date: date | None = None
    copy_prices: bool | None = None


class RollForwardSummaryResponse(BaseModel):
    locations_created: int
    locations_with_opening_value: int
    total_opening_value: Decimal
    prices_copied: int


class RollForwardResponse(BaseModel):
    source_period: PeriodResponse
    new_period: PeriodResponse
    locations: list[PeriodLocationResponse]
    summary: RollForwardSummaryResponse


# ---------------------------------------------------------------------------
# Reconciliations
# ---------------------------------------------------------------------------


class ReconciliationFiguresBody(BaseModel):
    opening_stock: Decimal = Decimal("0")
    receipts: Decimal = Decimal("0")
    transfers_in: Decimal = Decimal("0")
    transfers_out: Decimal = Decimal("0")
    issues: Decimal = Decimal("0")
    closing_stock: Decimal = Decimal("0")
    adjustments: Decimal = Decimal("0")
    back_charges: Decimal = Decimal("0")
    credits: Decimal = Decimal("0")
    condemnations: Decimal = Decimal("0")


class ReconciliationSave(ReconciliationFiguresBody):
    period_id: uuid.UUID
    location_id: uuid.UUID


class ReconciliationResponse(BaseModel):
    id: uuid.UUID
    period_id: uuid.UUID
    location_id: uuid.UUID
    figures: ReconciliationFiguresBody
    calculated_closing: Decimal
    variance: Decimal
    last_updated: datetime | None = None


def figures_payload(body: BaseModel) -> dict[str, Any]:
    return body.model_dump(include=set(ReconciliationFiguresBody.model_fields))
