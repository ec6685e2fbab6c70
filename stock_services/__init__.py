"""
stock_services -- orchestration over the stock kernel.

Responsibility:
    The period close orchestrator, the PERIOD_CLOSE approval handler, the
    roll-forward generator and the workflow composition root.

Architecture position:
    Services.  Depends on stock_kernel; stock_kernel never imports from
    here.
"""

from stock_services._close_types import (
    LocationCloseSummary,
    PeriodCloseSummary,
    RollForwardOptions,
    RollForwardResult,
    RollForwardSummary,
)
from stock_services.period_close_handler import PeriodCloseApprovalHandler
from stock_services.period_close_orchestrator import PeriodCloseOrchestrator
from stock_services.roll_forward import RollForwardGenerator
from stock_services.workflow import PeriodCloseWorkflow

__all__ = [
    "LocationCloseSummary",
    "PeriodCloseApprovalHandler",
    "PeriodCloseOrchestrator",
    "PeriodCloseSummary",
    "PeriodCloseWorkflow",
    "RollForwardGenerator",
    "RollForwardOptions",
    "RollForwardResult",
    "RollForwardSummary",
]
