"""
Sales summaries over named periods.

Windows end at ``now`` and start one day, seven days or one month earlier
using UTC calendar-field arithmetic. A month step from a day that does
not exist in the previous month lands on that month's last day.
"""

import calendar
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from sales_ledger.errors import ValidationError
from sales_ledger.storage.repository import SalesRepository


class SummaryPeriod(Enum):
    """Supported summary windows."""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"

    @classmethod
    def parse(cls, token: str) -> "SummaryPeriod":
        """Parse a period token such as ``"week"``.

        Raises:
            ValidationError: If the token is not day, week or month
        """
        try:
            return cls(str(token).strip().lower())
        except ValueError:
            valid = [period.value for period in cls]
            raise ValidationError(f"Period must be one of: {valid}, got {token!r}")


@dataclass(frozen=True)
class PeriodSummary:
    """Totals for one named period, ready for presentation."""
    period: SummaryPeriod
    start: int
    end: int
    count: int
    total_amount: float
    total_commission: float


def subtract_months(moment: datetime, months: int) -> datetime:
    """Step back ``months`` calendar months, clamping the day of month."""
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return moment.replace(year=year, month=month, day=min(moment.day, last_day))


def window_start(period: SummaryPeriod, now: datetime) -> datetime:
    """Compute the inclusive start of the window ending at ``now``.

    Args:
        period: Named summary period
        now: End of the window; naive values are taken as UTC

    Returns:
        Timezone-aware UTC start of the window
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)

    # UTC has no DST, so a calendar day step equals a timedelta day here
    if period is SummaryPeriod.DAY:
        return now - timedelta(days=1)
    if period is SummaryPeriod.WEEK:
        return now - timedelta(days=7)
    return subtract_months(now, 1)


def summarize_period(
    period: SummaryPeriod,
    repository: SalesRepository,
    now: Optional[datetime] = None
) -> PeriodSummary:
    """Aggregate sales recorded in the window for ``period``.

    Args:
        period: Named summary period
        repository: Ledger to read from
        now: End of the window, defaults to the current time

    Returns:
        PeriodSummary with zeroed totals for an empty window
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    start = window_start(period, now)
    from_ts = int(start.timestamp())
    to_ts = int(now.timestamp())

    summary = repository.summarize(from_ts, to_ts)
    return PeriodSummary(
        period=period,
        start=from_ts,
        end=to_ts,
        count=summary.count,
        total_amount=summary.total_amount,
        total_commission=summary.total_commission,
    )
