"""Payout periods: closed date ranges or the open-ended "all unpaid" period."""

import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional

from payout_server.errors import ValidationError

MIN_YEAR = 2000
MAX_YEAR = 2100


@dataclass(frozen=True)
class Period:
    start: date
    end: date

    def __post_init__(self):
        if self.end < self.start:
            raise ValidationError(
                f"Periodo inválido: {self.start.isoformat()} > {self.end.isoformat()}"
            )

    @classmethod
    def for_month(cls, month: int, year: int) -> "Period":
        if not 1 <= int(month) <= 12:
            raise ValidationError(f"Mes inválido: {month}")
        if not MIN_YEAR <= int(year) <= MAX_YEAR:
            raise ValidationError(f"Año inválido: {year}")
        last_day = calendar.monthrange(int(year), int(month))[1]
        return cls(date(int(year), int(month), 1), date(int(year), int(month), last_day))

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.start, time.min)

    @property
    def ends_before(self) -> datetime:
        """Exclusive upper bound for ``completed_at`` comparisons."""
        return datetime.combine(self.end + timedelta(days=1), time.min)

    def contains(self, moment: datetime) -> bool:
        return self.starts_at <= moment < self.ends_before

    def overlaps(self, start: Optional[date], end: Optional[date]) -> bool:
        """Whether ``[start, end]`` intersects this period; None bounds are open."""
        if start is not None and start > self.end:
            return False
        if end is not None and end < self.start:
            return False
        return True


def month_period(month: Optional[int], year: Optional[int]) -> Optional[Period]:
    """Period for an optional month/year pair; both or neither must be given."""
    if month is None and year is None:
        return None
    if month is None or year is None:
        raise ValidationError("Se requieren mes y año juntos")
    return Period.for_month(month, year)


def current_month(now: Optional[datetime] = None):
    now = now or datetime.utcnow()
    return now.month, now.year
