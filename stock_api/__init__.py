"""
stock_api -- HTTP surface for the period close workflow.

Thin FastAPI layer: routes parse requests, delegate to
``PeriodCloseWorkflow`` and render kernel DTOs.  All business rules live
in ``stock_kernel`` and ``stock_services``.
"""

from stock_api.app import create_app

__all__ = ["create_app"]
