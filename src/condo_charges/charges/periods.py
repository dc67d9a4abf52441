"""Calendar helpers: reference-month keys and due-date clamping."""

import calendar
import re
from datetime import MINYEAR, date
from typing import NamedTuple

from .errors import InvalidReferenceMonth

_REFERENCE_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


class ReferenceMonth(NamedTuple):
    """Typed ``(year, month)`` key identifying a billing month."""

    year: int
    month: int

    @classmethod
    def parse(cls, value: str) -> "ReferenceMonth":
        """Parse a zero-padded ``YYYY-MM`` string.

        Args:
            value: Reference month string, e.g. ``"2024-03"``.

        Returns:
            ReferenceMonth for the string.

        Raises:
            InvalidReferenceMonth: If the string is not exactly ``YYYY-MM``,
                the month is outside 01..12 or the year is 0000.
        """
        match = _REFERENCE_MONTH_RE.match(value.strip()) if isinstance(value, str) else None
        if not match:
            raise InvalidReferenceMonth(f"Invalid reference month: {value!r}")
        year, month = int(match.group(1)), int(match.group(2))
        if not 1 <= month <= 12:
            raise InvalidReferenceMonth(f"Month out of range in reference month: {value!r}")
        if year < MINYEAR:
            raise InvalidReferenceMonth(f"Year out of range in reference month: {value!r}")
        return cls(year, month)

    @classmethod
    def from_date(cls, value: date) -> "ReferenceMonth":
        return cls(value.year, value.month)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


def due_date_for(year: int, month: int, due_day: int) -> date:
    """Return the due date of a month, clamping to the month's last day.

    ``due_date_for(2024, 4, 31)`` is 2024-04-30 and
    ``due_date_for(2023, 2, 30)`` is 2023-02-28.
    """
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(due_day, last_day))
