"""
Module: stock_kernel.models.location
Responsibility: ORM persistence for stock-holding locations.
Architecture position: Kernel > Models.  May import from db/ and domain/.

Locations are reference data maintained outside the close workflow.  The
kernel reads them: every *active* location receives a PeriodLocation row
when a period is created or rolled forward.
"""

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import TrackedBase
from stock_kernel.domain.catalog import LocationType
from stock_kernel.domain.snapshot import LocationRef


class Location(TrackedBase):
    """A physical stock-holding site (kitchen, store, warehouse...)."""

    __tablename__ = "locations"

    __table_args__ = (
        Index("idx_locations_active", "is_active"),
    )

    code: Mapped[str] = mapped_column(String(10), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=LocationType.STORE.value,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Location {self.code}: {self.name}>"

    def to_ref(self) -> LocationRef:
        return LocationRef(location_id=self.id, code=self.code, name=self.name)
