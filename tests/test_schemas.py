"""Tests for the persistence-to-response mapping layer."""

from datetime import date, datetime

import pytest
from pydantic import ValidationError as SchemaValidationError

from cabinstay.modules.promotions import PublicPromo
from cabinstay.schemas import (
    BookingCreateBody,
    DateChangeBody,
    GuestMessageBody,
    PublicPromoResponse,
    booking_detail,
    booking_list_item,
    dump,
)

from conftest import make_booking


@pytest.fixture
def booking():
    booking = make_booking(special_requests=None)
    booking.id = 42
    booking.created_at = datetime(2025, 5, 1, 9, 30)
    return booking


def test_booking_detail_is_camel_case(booking):
    detail = booking_detail(booking)

    assert detail["bookingReference"] == "ABC123"
    assert detail["cabinId"] == "the-pine"
    assert detail["cabinName"] == "The Pine"
    assert detail["checkIn"] == "2025-07-10"
    assert detail["checkOut"] == "2025-07-15"
    assert detail["nights"] == 5
    assert detail["basePrice"] == 2250.0
    assert detail["paymentStatus"] == "paid"
    assert detail["createdAt"] == "2025-05-01T09:30:00"
    assert detail["specialRequests"] == ""
    assert "booking_reference" not in detail
    assert "id" not in detail


def test_booking_list_item_is_snake_case(booking):
    row = booking_list_item(booking)
    assert row == {
        "id": 42,
        "booking_reference": "ABC123",
        "cabin_name": "The Pine",
        "check_in": "2025-07-10",
        "check_out": "2025-07-15",
        "guests": 2,
        "nights": 5,
        "total": 2775.0,
        "status": "confirmed",
        "payment_status": "paid",
        "created_at": "2025-05-01T09:30:00",
    }


@pytest.mark.parametrize("key", ["bookingId", "bookingReference"])
def test_reference_accepts_either_name(key):
    body = GuestMessageBody.model_validate({key: " abc123 ", "message": "hi"})
    assert body.booking_reference == "abc123"


def test_missing_reference_is_none():
    assert GuestMessageBody.model_validate({}).booking_reference is None


def test_date_change_body_parses_dates():
    body = DateChangeBody.model_validate(
        {"bookingId": "ABC123", "newCheckIn": "2025-06-01", "newCheckOut": "2025-06-05"}
    )
    assert body.new_check_in == date(2025, 6, 1)
    assert body.new_check_out == date(2025, 6, 5)


def test_booking_create_body_to_request():
    body = BookingCreateBody.model_validate({
        "cabinId": "the-pine",
        "guestName": "Ana",
        "guestEmail": "ana@example.com",
        "checkIn": "2025-08-01",
        "checkOut": "2025-08-04",
        "guests": 2,
        "promoCode": "",
    })
    request = body.to_request()
    assert request.cabin_id == "the-pine"
    assert request.check_out == date(2025, 8, 4)
    assert request.promo_code is None


def test_malformed_date_rejected():
    with pytest.raises(SchemaValidationError):
        BookingCreateBody.model_validate({"checkIn": "next tuesday"})


def test_public_promo_response():
    promo = PublicPromo(code="SUMMER10", discount_type="percentage", discount_value=10.0)
    assert dump(PublicPromoResponse.model_validate(promo)) == {
        "code": "SUMMER10",
        "discountType": "percentage",
        "discountValue": 10.0,
        "description": None,
    }
