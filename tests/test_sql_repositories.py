"""Tests for the SQLAlchemy repositories, including concurrent writers."""

from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timedelta
from unittest.mock import MagicMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from cabinstay.errors import BookingConflictError, DuplicateError, StorageError
from cabinstay.models.booking import CANCELLED, CabinNight
from cabinstay.models.cabin import Cabin
from cabinstay.models.change_request import DateChangeRequest
from cabinstay.models.message import UserMessage
from cabinstay.models.promo import PERCENTAGE, PromoCode
from cabinstay.repositories import (
    SqlBookingRepository,
    SqlPromoCodeRepository,
    SqlVisitorRepository,
)

from conftest import make_booking

NOW = datetime(2025, 6, 1, 12, 0)


def count_nights(session_factory) -> int:
    session = session_factory()
    try:
        return session.scalar(select(func.count()).select_from(CabinNight))
    finally:
        session.close()


class TestSqlBookingRepository:
    def test_add_claims_every_inclusive_day(self, sql_repos, session_factory):
        bookings = sql_repos["bookings"]
        bookings.add(make_booking())
        assert count_nights(session_factory) == 6
        assert bookings.get_by_reference("ABC123").cabin_name == "The Pine"

    def test_overlap_raises_conflict_and_leaves_no_trace(self, sql_repos, session_factory):
        bookings = sql_repos["bookings"]
        bookings.add(make_booking())
        with pytest.raises(BookingConflictError):
            bookings.add(make_booking("LATE0001", check_in=date(2025, 7, 15), check_out=date(2025, 7, 17)))

        assert bookings.get_by_reference("LATE0001") is None
        assert count_nights(session_factory) == 6

    def test_non_blocking_booking_claims_nothing(self, sql_repos, session_factory):
        sql_repos["bookings"].add(make_booking(status=CANCELLED))
        assert count_nights(session_factory) == 0

    def test_cancel_releases_nights(self, sql_repos, session_factory):
        bookings = sql_repos["bookings"]
        bookings.add(make_booking())

        assert bookings.cancel("ABC123").status == CANCELLED
        assert bookings.cancel("ABC123").status == CANCELLED
        assert count_nights(session_factory) == 0
        assert bookings.list_blocking("the-pine") == []
        bookings.add(make_booking("AGAIN001"))

    def test_cancel_unknown_returns_none(self, sql_repos):
        assert sql_repos["bookings"].cancel("NOPE0000") is None

    def test_list_blocking_matches_slug_or_name(self, sql_repos):
        bookings = sql_repos["bookings"]
        bookings.add(make_booking())
        bookings.add(make_booking("BIRCH001", cabin_id="the-birch", cabin_name="The Birch"))
        assert [b.booking_reference for b in bookings.list_blocking("The Pine")] == ["ABC123"]
        assert [b.booking_reference for b in bookings.list_blocking("the-pine")] == ["ABC123"]

    def test_list_for_email_newest_first(self, sql_repos):
        bookings = sql_repos["bookings"]
        bookings.add(make_booking("OLD00001", created_at=NOW - timedelta(days=2)))
        bookings.add(make_booking("NEW00001", check_in=date(2025, 9, 1), check_out=date(2025, 9, 3), created_at=NOW))
        assert [b.booking_reference for b in bookings.list_for_email("Guest@Example.com")] == [
            "NEW00001", "OLD00001",
        ]

    def test_set_special_requests(self, sql_repos):
        bookings = sql_repos["bookings"]
        bookings.add(make_booking())
        bookings.set_special_requests("ABC123", "first")
        bookings.set_special_requests("ABC123", "second")
        assert bookings.get_by_reference("ABC123").special_requests == "second"
        assert bookings.set_special_requests("NOPE0000", "x") is None

    def test_driver_failure_becomes_storage_error(self, caplog):
        session = MagicMock()
        session.scalar.side_effect = OperationalError("SELECT", {}, Exception("db down"))

        with pytest.raises(StorageError) as exc:
            SqlBookingRepository(lambda: session).get_by_reference("ABC123")

        session.rollback.assert_called_once()
        session.close.assert_called_once()

        assert exc.value.details == {"operation": "get_booking", "reference": "ABC123"}
        assert "Storage failure during get_booking" in caplog.text

    def test_concurrent_overlapping_admissions_one_wins(self, file_session_factory):
        bookings = SqlBookingRepository(file_session_factory)

        def admit(n: int) -> str:
            try:
                bookings.add(make_booking(
                    f"RACE{n:04d}", check_in=date(2025, 7, 10 + n % 3), check_out=date(2025, 7, 14),
                ))
                return "ok"
            except BookingConflictError:
                return "conflict"

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(admit, range(8)))

        assert results.count("ok") == 1
        assert results.count("conflict") == 7
        assert len(bookings.list_blocking("the-pine")) == 1


class TestSqlPromoCodeRepository:
    def add_code(self, repo, **overrides):
        values = dict(code="SUMMER10", discount_type=PERCENTAGE, discount_value=10.0, is_active=True)
        values.update(overrides)
        return repo.add(PromoCode(**values))

    def test_duplicate_code(self, sql_repos):
        promo_codes = sql_repos["promo_codes"]
        self.add_code(promo_codes)
        with pytest.raises(DuplicateError):
            self.add_code(promo_codes)

    def test_redeem_respects_limit_and_expiry(self, sql_repos):
        promo_codes = sql_repos["promo_codes"]
        self.add_code(promo_codes, max_uses=1, valid_until=NOW)

        assert not promo_codes.redeem("SUMMER10", NOW + timedelta(microseconds=1))
        assert promo_codes.redeem("SUMMER10", NOW)
        assert not promo_codes.redeem("SUMMER10", NOW)
        assert promo_codes.get_by_code("SUMMER10").current_uses == 1

    def test_redeem_inactive_or_missing(self, sql_repos):
        promo_codes = sql_repos["promo_codes"]
        self.add_code(promo_codes, is_active=False)
        assert not promo_codes.redeem("SUMMER10", NOW)
        assert not promo_codes.redeem("NOPE", NOW)

    def test_release_floor(self, sql_repos):
        promo_codes = sql_repos["promo_codes"]
        self.add_code(promo_codes)
        assert promo_codes.redeem("SUMMER10", NOW)
        assert promo_codes.release("SUMMER10")
        assert not promo_codes.release("SUMMER10")
        assert promo_codes.get_by_code("SUMMER10").current_uses == 0

    def test_ten_concurrent_redemptions_with_five_uses(self, file_session_factory):
        promo_codes = SqlPromoCodeRepository(file_session_factory)
        self.add_code(promo_codes, max_uses=5)

        with ThreadPoolExecutor(max_workers=10) as pool:
            results = list(pool.map(lambda _: promo_codes.redeem("SUMMER10", NOW), range(10)))

        assert results.count(True) == 5
        assert promo_codes.get_by_code("SUMMER10").current_uses == 5


class TestSqlVisitorRepository:
    def test_upsert_increments(self, sql_repos):
        visitors = sql_repos["visitors"]
        visitors.upsert_visit("1.2.3.4", user_agent="a", referrer=None, page_url="/", now=NOW)
        visitors.upsert_visit(
            "1.2.3.4", user_agent="b", referrer="r", page_url="/x", now=NOW + timedelta(hours=1),
        )
        visitors.upsert_visit("5.6.7.8", user_agent=None, referrer=None, page_url=None, now=NOW)

        record = visitors.get("1.2.3.4")
        assert record.visit_count == 2
        assert record.first_visit == NOW
        assert record.last_visit == NOW + timedelta(hours=1)
        assert (record.user_agent, record.referrer, record.page_url) == ("b", "r", "/x")
        assert visitors.get("5.6.7.8").visit_count == 1

    def test_concurrent_visits_from_one_ip(self, file_session_factory):
        visitors = SqlVisitorRepository(file_session_factory)

        def visit(_):
            visitors.upsert_visit("1.2.3.4", user_agent=None, referrer=None, page_url="/", now=NOW)

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(visit, range(16)))

        assert visitors.get("1.2.3.4").visit_count == 16


class TestOtherRepositories:
    def test_cabin_update_ignores_non_editable(self, sql_repos):
        cabins = sql_repos["cabins"]
        cabins.add(Cabin(slug="the-pine", name="The Pine", nightly_price=450.0, max_guests=4))
        updated = cabins.update("the-pine", {"nightly_price": 480.0, "slug": "hacked"})
        assert updated.nightly_price == 480.0
        assert updated.slug == "the-pine"
        assert cabins.update("the-willow", {"name": "x"}) is None
        with pytest.raises(DuplicateError):
            cabins.add(Cabin(slug="the-pine", name="Again"))

    def test_date_change_requests_ordering(self, sql_repos):
        requests = sql_repos["date_changes"]
        for n, created in enumerate([NOW - timedelta(days=1), NOW]):
            requests.add(DateChangeRequest(
                booking_reference="ABC123",
                original_check_in=date(2025, 7, 10),
                original_check_out=date(2025, 7, 15),
                requested_check_in=date(2025, 8, 1 + n),
                requested_check_out=date(2025, 8, 5),
                created_at=created,
            ))
        assert [r.requested_check_in.day for r in requests.list_for_booking("ABC123")] == [1, 2]
        assert [r.requested_check_in.day for r in requests.list_all()] == [2, 1]

    def test_messages_mark_replied(self, sql_repos):
        messages = sql_repos["messages"]
        stored = messages.add(UserMessage(user_email="ana@example.com", message="Hello"))
        assert stored.status == "unread"

        replied = messages.mark_replied(stored.id, "Hi Ana", NOW)
        assert replied.status == "replied"
        assert messages.get(stored.id).admin_reply == "Hi Ana"
        assert messages.mark_replied(999, "x", NOW) is None
