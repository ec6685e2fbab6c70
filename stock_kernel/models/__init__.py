"""
SQLAlchemy ORM models for the stock close kernel.

Importing this package registers every table on ``Base.metadata``.
"""

from stock_kernel.models.approval import ApprovalModel
from stock_kernel.models.item import Item, ItemPrice
from stock_kernel.models.location import Location
from stock_kernel.models.period import Period, PeriodLocation
from stock_kernel.models.reconciliation import Reconciliation
from stock_kernel.models.stock import LocationStock

__all__ = [
    "ApprovalModel",
    "Item",
    "ItemPrice",
    "Location",
    "LocationStock",
    "Period",
    "PeriodLocation",
    "Reconciliation",
]
