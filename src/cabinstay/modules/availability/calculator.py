"""Cabin availability over inclusive date ranges.

A stay occupies every calendar day from check-in through check-out,
checkout day included, so a new guest can never arrive on the day the
previous one leaves.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import TYPE_CHECKING, Iterable, Iterator

if TYPE_CHECKING:
    from cabinstay.repositories.base import BookingRepository


def stay_days(check_in: date, check_out: date) -> Iterator[date]:
    """Yield every day of a stay, check-in through check-out inclusive."""
    current = check_in
    while current <= check_out:
        yield current
        current += timedelta(days=1)


def ranges_conflict(
    first: tuple[date, date], second: tuple[date, date]
) -> bool:
    """Two stays conflict when their inclusive day sets intersect."""
    return first[0] <= second[1] and second[0] <= first[1]


def occupied_days(stays: Iterable[tuple[date, date]]) -> set[date]:
    days: set[date] = set()
    for check_in, check_out in stays:
        days.update(stay_days(check_in, check_out))
    return days


class AvailabilityCalculator:
    """Read-only availability queries against the booking store."""

    def __init__(self, bookings: BookingRepository) -> None:
        self._bookings = bookings

    def is_available(self, cabin: str, check_in: date, check_out: date) -> bool:
        requested = (check_in, check_out)
        return not any(
            ranges_conflict(requested, (b.check_in, b.check_out))
            for b in self._bookings.list_blocking(cabin)
        )

    def occupied_dates(self, cabin: str) -> set[date]:
        """Every day held by a pending or confirmed booking of the cabin."""
        return occupied_days((b.check_in, b.check_out) for b in self._bookings.list_blocking(cabin))
