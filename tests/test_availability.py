"""Tests for inclusive-range availability."""

from datetime import date

from cabinstay.models.booking import CANCELLED, COMPLETED, PENDING
from cabinstay.modules.availability import (
    AvailabilityCalculator,
    occupied_days,
    ranges_conflict,
    stay_days,
)

from conftest import make_booking


class TestStayDays:
    def test_includes_checkout_day(self):
        days = list(stay_days(date(2025, 7, 10), date(2025, 7, 12)))
        assert days == [date(2025, 7, 10), date(2025, 7, 11), date(2025, 7, 12)]

    def test_spans_month_boundary(self):
        days = list(stay_days(date(2025, 1, 30), date(2025, 2, 2)))
        assert len(days) == 4
        assert days[-1] == date(2025, 2, 2)


class TestRangesConflict:
    def test_shared_turnover_day_conflicts(self):
        assert ranges_conflict(
            (date(2025, 7, 10), date(2025, 7, 15)),
            (date(2025, 7, 15), date(2025, 7, 18)),
        )

    def test_day_after_checkout_is_free(self):
        assert not ranges_conflict(
            (date(2025, 7, 10), date(2025, 7, 15)),
            (date(2025, 7, 16), date(2025, 7, 18)),
        )

    def test_containment_conflicts(self):
        assert ranges_conflict(
            (date(2025, 7, 1), date(2025, 7, 31)),
            (date(2025, 7, 10), date(2025, 7, 12)),
        )

    def test_symmetric(self):
        a = (date(2025, 7, 10), date(2025, 7, 15))
        b = (date(2025, 7, 5), date(2025, 7, 10))
        assert ranges_conflict(a, b) == ranges_conflict(b, a)


def test_occupied_days_deduplicates():
    days = occupied_days([
        (date(2025, 7, 1), date(2025, 7, 3)),
        (date(2025, 7, 3), date(2025, 7, 4)),
    ])
    assert days == {date(2025, 7, 1), date(2025, 7, 2), date(2025, 7, 3), date(2025, 7, 4)}


class TestAvailabilityCalculator:
    def test_the_pine_turnover_day_is_unavailable(self, booking_repo, sample_booking):
        calc = AvailabilityCalculator(booking_repo)
        assert not calc.is_available("the-pine", date(2025, 7, 15), date(2025, 7, 18))
        assert calc.is_available("the-pine", date(2025, 7, 16), date(2025, 7, 18))

    def test_other_cabin_unaffected(self, booking_repo, sample_booking):
        calc = AvailabilityCalculator(booking_repo)
        assert calc.is_available("the-birch", date(2025, 7, 10), date(2025, 7, 15))

    def test_cancelled_and_completed_do_not_block(self, booking_repo):
        booking_repo.add(make_booking("CANC0001", status=CANCELLED))
        booking_repo.add(make_booking("DONE0001", status=COMPLETED))
        calc = AvailabilityCalculator(booking_repo)
        assert calc.is_available("the-pine", date(2025, 7, 10), date(2025, 7, 15))
        assert calc.occupied_dates("the-pine") == set()

    def test_pending_blocks(self, booking_repo):
        booking_repo.add(make_booking("PEND0001", status=PENDING))
        calc = AvailabilityCalculator(booking_repo)
        assert not calc.is_available("the-pine", date(2025, 7, 12), date(2025, 7, 13))

    def test_occupied_dates_exactly_cover_inclusive_ranges(self, booking_repo, sample_booking):
        booking_repo.add(make_booking(
            "XYZ98765", check_in=date(2025, 8, 1), check_out=date(2025, 8, 3), status=PENDING,
        ))
        occupied = AvailabilityCalculator(booking_repo).occupied_dates("the-pine")

        for booking in (sample_booking, booking_repo.get_by_reference("XYZ98765")):
            assert set(stay_days(booking.check_in, booking.check_out)) <= occupied
        assert date(2025, 7, 9) not in occupied
        assert date(2025, 7, 16) not in occupied
        assert len(occupied) == 6 + 3

    def test_occupied_dates_by_cabin_name(self, booking_repo, sample_booking):
        calc = AvailabilityCalculator(booking_repo)
        assert calc.occupied_dates("The Pine") == calc.occupied_dates("the-pine")

    def test_queries_do_not_modify_bookings(self, booking_repo, sample_booking):
        calc = AvailabilityCalculator(booking_repo)
        calc.occupied_dates("the-pine")
        calc.is_available("the-pine", date(2025, 7, 1), date(2025, 7, 30))
        assert sample_booking.status == "confirmed"
        assert len(booking_repo.bookings) == 1
