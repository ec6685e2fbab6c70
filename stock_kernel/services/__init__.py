"""Kernel services: flush-only, session-scoped, clock-injected."""

from stock_kernel.services.approval_gateway import (
    ApprovalGateway,
    ApprovalHandlerRegistry,
    parse_entity_type,
)
from stock_kernel.services.base import BaseService
from stock_kernel.services.period_service import PeriodService
from stock_kernel.services.price_service import PriceService
from stock_kernel.services.readiness_service import LocationReadinessService
from stock_kernel.services.reconciliation_service import ReconciliationService
from stock_kernel.services.snapshot_service import SnapshotService

__all__ = [
    "ApprovalGateway",
    "ApprovalHandlerRegistry",
    "BaseService",
    "LocationReadinessService",
    "PeriodService",
    "PriceService",
    "ReconciliationService",
    "SnapshotService",
    "parse_entity_type",
]
