"""
stock_services.roll_forward -- create the next period from a closed one.

Responsibility:
    Derives the next period's dates and name from a CLOSED source period,
    creates it DRAFT with one PeriodLocation per active location whose
    opening_value is the source location's closing_value, and optionally
    copies the source's active-item prices.

Architecture position:
    Services -- orchestration over PeriodService and PriceService.

Invariants enforced:
    - Source must be CLOSED.
    - new start = source end + 1 day; default end = last day of the new
      start's month (leap years included).
    - The new range must not overlap any existing period.
    - Opening value carry-over is exact, including None for locations
      without a closing value (and for locations new since the source).
    - All writes share the caller's transaction.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from stock_kernel.domain.period import (
    PeriodStatus,
    default_period_name,
    last_day_of_month,
    next_period_start,
)
from stock_kernel.exceptions import (
    PeriodNotFoundError,
    SourceNotClosedError,
)
from stock_kernel.logging_config import get_logger
from stock_kernel.models.period import Period, PeriodLocation
from stock_kernel.services.period_service import PeriodService
from stock_kernel.services.price_service import PriceService
from stock_services._close_types import (
    RollForwardOptions,
    RollForwardResult,
    RollForwardSummary,
)

logger = get_logger("services.roll_forward")


class RollForwardGenerator:
    """Builds the period that follows a closed one."""

    def __init__(
        self,
        session: Session,
        period_service: PeriodService,
        price_service: PriceService,
    ):
        self._session = session
        self._period_service = period_service
        self._price_service = price_service

    def roll_forward(
        self,
        source_period_id: UUID,
        actor_id: UUID,
        options: RollForwardOptions | None = None,
    ) -> RollForwardResult:
        """
        Create the next DRAFT period.

        Raises:
            PeriodNotFoundError: unknown source.
            SourceNotClosedError: source is not CLOSED.
            ValidationFailedError: name outside 1-100 characters.
            InvalidDateRangeError: ``options.end_date`` not after the
                derived start date.
            OverlappingPeriodError: derived range intersects a period.
        """
        options = options or RollForwardOptions()

        source = self._session.get(Period, source_period_id)
        if source is None:
            raise PeriodNotFoundError(str(source_period_id))
        if source.status != PeriodStatus.CLOSED.value:
            logger.warning(
                "roll_forward_rejected_not_closed",
                extra={
                    "period_id": str(source_period_id),
                    "status": source.status,
                },
            )
            raise SourceNotClosedError(str(source_period_id), source.status)

        start_date = next_period_start(source.end_date)
        end_date = options.end_date or last_day_of_month(start_date)
        name = options.name if options.name is not None else default_period_name(start_date)

        closing_values: dict[UUID, Decimal | None] = {
            row.location_id: row.closing_value
            for row in self._session.execute(
                select(PeriodLocation.location_id, PeriodLocation.closing_value)
                .where(PeriodLocation.period_id == source_period_id)
            )
        }

        new_period = self._period_service.create_period(
            name=name,
            start_date=start_date,
            end_date=end_date,
            actor_id=actor_id,
            status=PeriodStatus.DRAFT,
            opening_values=closing_values,
            allow_single_day=options.end_date is None,
        )

        prices_copied = 0
        if options.copy_prices:
            prices_copied = len(self._price_service.copy_prices(
                source_period_id, new_period.id, actor_id,
            ))

        locations = tuple(self._period_service.list_period_locations(new_period.id))
        carried = [pl.opening_value for pl in locations if pl.opening_value is not None]
        summary = RollForwardSummary(
            locations_created=len(locations),
            locations_with_opening_value=len(carried),
            total_opening_value=sum(carried, Decimal("0")),
            prices_copied=prices_copied,
        )

        logger.info(
            "period_rolled_forward",
            extra={
                "source_period_id": str(source_period_id),
                "period_id": str(new_period.id),
                "start_date": str(start_date),
                "end_date": str(end_date),
                "locations_created": summary.locations_created,
                "prices_copied": prices_copied,
                "actor_id": str(actor_id),
            },
        )

        return RollForwardResult(
            source_period=source.to_dto(),
            new_period=new_period,
            locations=locations,
            summary=summary,
        )
