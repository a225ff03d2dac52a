"""Request and response schemas.

This is the one place where ORM attribute names (snake_case) are mapped to
the public JSON field names. Booking detail and most payloads are camelCase;
the signed-in user's booking list keeps snake_case rows.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from cabinstay.modules.bookings.lifecycle import BookingRequest

REFERENCE_ALIASES = AliasChoices("bookingId", "bookingReference", "booking_reference")


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
    )


class CamelSchema(BaseSchema):
    """Fields read and written under their camelCase names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


def dump(schema: BaseModel) -> dict[str, Any]:
    return schema.model_dump(by_alias=True, mode="json")


# --- Bookings ---


class BookingDetail(CamelSchema):
    """Full booking as shown to the guest holding the reference."""

    booking_reference: str
    cabin_id: str
    cabin_name: str
    guest_name: str
    guest_email: str
    guest_phone: Optional[str] = None
    check_in: date
    check_out: date
    guests: int
    nights: int
    base_price: float
    cleaning_fee: float
    service_fee: float
    discount: float = 0.0
    total: float
    promo_code: Optional[str] = None
    status: str
    payment_status: str
    created_at: datetime
    special_requests: str = ""

    @field_validator("special_requests", mode="before")
    @classmethod
    def _blank_special_requests(cls, value: Any) -> Any:
        return "" if value is None else value


class BookingListItem(BaseSchema):
    """Row of the signed-in user's booking list."""

    id: int
    booking_reference: str
    cabin_name: str
    check_in: date
    check_out: date
    guests: int
    nights: int
    total: float
    status: str
    payment_status: str
    created_at: datetime


def booking_detail(booking: Any) -> dict[str, Any]:
    return dump(BookingDetail.model_validate(booking))


def booking_list_item(booking: Any) -> dict[str, Any]:
    return dump(BookingListItem.model_validate(booking))


class BookingReferenceBody(BaseSchema):
    booking_reference: Optional[str] = Field(default=None, validation_alias=REFERENCE_ALIASES)


class GuestMessageBody(BookingReferenceBody):
    message: Optional[str] = None


class DateChangeBody(BookingReferenceBody):
    new_check_in: Optional[date] = Field(
        default=None, validation_alias=AliasChoices("newCheckIn", "requestedCheckIn")
    )
    new_check_out: Optional[date] = Field(
        default=None, validation_alias=AliasChoices("newCheckOut", "requestedCheckOut")
    )
    message: Optional[str] = None


class BookingCreateBody(CamelSchema):
    cabin_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("cabinId", "cabinSlug", "cabin_id"))
    guest_name: Optional[str] = None
    guest_email: Optional[str] = None
    guest_phone: Optional[str] = None
    check_in: Optional[date] = None
    check_out: Optional[date] = None
    guests: int = Field(default=1)
    promo_code: Optional[str] = None
    special_requests: Optional[str] = None

    def to_request(self) -> BookingRequest:
        return BookingRequest(
            cabin_id=self.cabin_id,
            guest_name=self.guest_name,
            guest_email=self.guest_email,
            guest_phone=self.guest_phone or None,
            check_in=self.check_in,
            check_out=self.check_out,
            guests=self.guests,
            promo_code=self.promo_code or None,
            special_requests=self.special_requests or None,
        )


class QuoteBody(CamelSchema):
    cabin_id: str = Field(validation_alias=AliasChoices("cabinId", "cabinSlug", "cabin_id"))
    check_in: date
    check_out: date
    promo_code: Optional[str] = None


class QuoteResponse(CamelSchema):
    cabin_id: str
    check_in: date
    check_out: date
    nights: int
    nightly_price: float
    base_price: float
    cleaning_fee: float
    service_fee: float
    discount: float
    total: float
    currency: str
    promo_code: Optional[str] = None
    adjustments: list[str] = Field(default_factory=list)


# --- Promo codes ---


class PromoValidateBody(BaseSchema):
    code: Optional[str] = None


class PublicPromoResponse(CamelSchema):
    code: str
    discount_type: str
    discount_value: float
    description: Optional[str] = None


class PromoCreateBody(CamelSchema):
    code: Optional[str] = None
    discount_type: Optional[str] = None
    discount_value: Optional[float] = None
    max_uses: Optional[int] = None
    valid_until: Optional[datetime] = None
    description: Optional[str] = None


class PromoCodeResponse(CamelSchema):
    """Admin view, counters included."""

    id: int
    code: str
    description: Optional[str] = None
    discount_type: str
    discount_value: float
    is_active: bool
    valid_until: Optional[datetime] = None
    max_uses: Optional[int] = None
    current_uses: int
    created_at: datetime


# --- Date changes ---


class DateChangeRequestResponse(CamelSchema):
    id: int
    booking_reference: str
    original_check_in: date
    original_check_out: date
    requested_check_in: date
    requested_check_out: date
    message: Optional[str] = None
    guest_name: Optional[str] = None
    guest_email: Optional[str] = None
    cabin_name: Optional[str] = None
    status: str
    created_at: datetime


# --- Messages ---


class UserContactBody(CamelSchema):
    message: Optional[str] = None
    user_email: Optional[str] = None
    user_name: Optional[str] = None
    booking_reference: Optional[str] = Field(default=None, validation_alias=REFERENCE_ALIASES)


class AdminReplyBody(CamelSchema):
    message_id: Optional[int] = None
    reply_text: Optional[str] = None


class UserMessageResponse(CamelSchema):
    id: int
    user_id: Optional[int] = None
    user_name: Optional[str] = None
    user_email: str
    booking_reference: Optional[str] = None
    message: str
    status: str
    admin_reply: Optional[str] = None
    replied_at: Optional[datetime] = None
    created_at: datetime


# --- Cabins ---


class CabinResponse(CamelSchema):
    slug: str
    name: str
    nightly_price: float
    max_guests: int
    is_active: bool
    description: Optional[str] = None


class CabinUpdateBody(BaseSchema):
    cabin_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("cabin_id", "cabinId"))
    updates: dict[str, Any] = Field(default_factory=dict)
