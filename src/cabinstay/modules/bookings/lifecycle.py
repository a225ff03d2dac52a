"""Booking admission and lifecycle transitions.

Status machine: pending/confirmed -> cancelled. Cancelling an already
cancelled booking succeeds without changing anything. Bookings are never
deleted; cancellation only releases the cabin nights they held.
"""

from __future__ import annotations

import logging
import secrets
import string
from dataclasses import dataclass
from datetime import date
from typing import Any

from cabinstay.config import settings
from cabinstay.errors import BookingConflictError, NotFoundError, StorageError, ValidationError
from cabinstay.events import Event, EventBus, EventType, event_bus
from cabinstay.models.booking import BOOKING_STATUSES, CANCELLED, PENDING, Booking, canonical_reference
from cabinstay.modules.availability.calculator import AvailabilityCalculator
from cabinstay.modules.pricing.engine import PricingEngine
from cabinstay.modules.promotions.codes import PromoCodeValidator
from cabinstay.repositories.base import BookingRepository, CabinRepository

logger = logging.getLogger(__name__)

REFERENCE_ALPHABET = string.ascii_uppercase + string.digits


def generate_reference(length: int = 8) -> str:
    return "".join(secrets.choice(REFERENCE_ALPHABET) for _ in range(length))


def require_reference(reference: str | None) -> str:
    if not reference or not reference.strip():
        raise ValidationError("Booking ID is required")
    return canonical_reference(reference)


@dataclass
class BookingRequest:
    """Guest input for a new reservation."""

    cabin_id: str | None
    guest_name: str | None
    guest_email: str | None
    check_in: date | None
    check_out: date | None
    guests: int = 1
    guest_phone: str | None = None
    promo_code: str | None = None
    special_requests: str | None = None


class BookingLifecycleManager:
    """Owns booking state: admission, lookup, cancellation, guest notes."""

    def __init__(
        self,
        bookings: BookingRepository,
        *,
        cabins: CabinRepository | None = None,
        promotions: PromoCodeValidator | None = None,
        pricing: PricingEngine | None = None,
        bus: EventBus | None = None,
        config: dict[str, Any] | None = None,
    ) -> None:
        self._bookings = bookings
        self._cabins = cabins
        self._promotions = promotions
        self._pricing = pricing or PricingEngine()
        self._availability = AvailabilityCalculator(bookings)
        self._bus = bus or event_bus
        self._config = config if config is not None else settings.get("bookings", {})

    # --- Admission ---

    def create(self, request: BookingRequest) -> Booking:
        """Admit a new booking if the cabin is free for the whole inclusive range.

        The availability check fails fast; the repository insert is what
        guarantees that two overlapping admissions cannot both succeed.
        """
        if self._cabins is None or self._promotions is None:
            raise RuntimeError("Booking admission needs cabin and promo code repositories")

        self._validate_request(request)
        check_in, check_out = request.check_in, request.check_out

        cabin = self._cabins.get_by_slug(request.cabin_id)
        if cabin is None or not cabin.is_active:
            raise NotFoundError("Cabin not found")
        if request.guests > cabin.max_guests:
            raise ValidationError(f"{cabin.name} sleeps at most {cabin.max_guests} guests")

        if not self._availability.is_available(cabin.slug, check_in, check_out):
            logger.warning("Cabin %s unavailable for %s..%s", cabin.slug, check_in, check_out)
            raise BookingConflictError(
                "Some dates in your selected range are already booked",
                details={"cabin": cabin.slug, "checkIn": check_in.isoformat(), "checkOut": check_out.isoformat()},
            )

        promo = None
        if request.promo_code:
            validation = self._promotions.validate(request.promo_code)
            if not validation.valid:
                raise ValidationError(validation.message, details={"reason": validation.reason.value})
            promo = validation.promo

        quote = self._pricing.quote(cabin, check_in, check_out, promo)

        if promo is not None and not self._promotions.redeem(promo.code):
            raise ValidationError("This promo code can no longer be redeemed")

        booking = Booking(
            booking_reference=self._new_reference(),
            cabin_id=cabin.slug,
            cabin_name=cabin.name,
            guest_name=request.guest_name.strip(),
            guest_email=request.guest_email.strip().lower(),
            guest_phone=request.guest_phone,
            check_in=check_in,
            check_out=check_out,
            guests=request.guests,
            base_price=quote.base_price,
            cleaning_fee=quote.cleaning_fee,
            service_fee=quote.service_fee,
            discount=quote.discount,
            total=quote.total,
            promo_code=quote.promo_code,
            status=self._config.get("initial_status", PENDING),
            payment_status="pending",
            special_requests=request.special_requests or None,
        )
        try:
            created = self._bookings.add(booking)
        except (BookingConflictError, StorageError):
            if promo is not None:
                self._promotions.release(promo.code)
            raise

        logger.info(
            "Booking %s created for %s %s..%s",
            created.booking_reference, cabin.slug, check_in, check_out,
        )
        self._bus.publish(Event(
            event_type=EventType.BOOKING_CREATED,
            data={
                "booking_reference": created.booking_reference,
                "cabin_id": cabin.slug,
                "guest_email": created.guest_email,
            },
        ))
        return created

    def _validate_request(self, request: BookingRequest) -> None:
        missing = [
            name
            for name in ("cabin_id", "guest_name", "guest_email", "check_in", "check_out")
            if not getattr(request, name)
        ]
        if missing:
            raise ValidationError("Missing required fields", details={"missing": missing})
        if "@" not in request.guest_email:
            raise ValidationError("A valid email address is required")
        if request.check_in >= request.check_out:
            raise ValidationError("Check-out must be after check-in")
        if request.guests < 1:
            raise ValidationError("At least one guest is required")

        nights = (request.check_out - request.check_in).days
        minimum = int(self._config.get("minimum_nights", 1))
        maximum = int(self._config.get("maximum_nights", 30))
        if nights < minimum:
            raise ValidationError(f"Minimum stay is {minimum} nights")
        if nights > maximum:
            raise ValidationError(f"Maximum stay is {maximum} nights")

        initial_status = self._config.get("initial_status", PENDING)
        if initial_status not in BOOKING_STATUSES:
            raise RuntimeError(f"Invalid initial booking status {initial_status!r} in config")

    def _new_reference(self) -> str:
        length = int(self._config.get("reference_length", 8))
        for _ in range(5):
            reference = generate_reference(length)
            if self._bookings.get_by_reference(reference) is None:
                return reference
        raise StorageError("Could not allocate a unique booking reference")

    # --- Lifecycle ---

    def lookup(self, reference: str | None) -> Booking:
        canonical = require_reference(reference)
        booking = self._bookings.get_by_reference(canonical)
        if booking is None:
            raise NotFoundError("Booking not found")
        return booking

    def cancel(self, reference: str | None) -> Booking:
        """Cancel regardless of current status. Repeating it is a no-op success."""
        canonical = require_reference(reference)
        existing = self._bookings.get_by_reference(canonical)
        if existing is None:
            raise NotFoundError("Booking not found")
        previous_status = existing.status

        booking = self._bookings.cancel(canonical)
        if booking is None:
            raise NotFoundError("Booking not found")

        if previous_status != CANCELLED:
            logger.info("Booking %s cancelled (was %s)", canonical, previous_status)
            self._bus.publish(Event(
                event_type=EventType.BOOKING_CANCELLED,
                data={"booking_reference": canonical, "cabin_id": booking.cabin_id},
            ))
        return booking

    def attach_guest_message(self, reference: str | None, message: str | None) -> Booking:
        """Store the guest's note for the admin, replacing any previous one."""
        if not reference or not reference.strip() or not message or not message.strip():
            raise ValidationError("Booking ID and message are required")
        canonical = canonical_reference(reference)

        booking = self._bookings.set_special_requests(canonical, message.strip())
        if booking is None:
            raise NotFoundError("Booking not found")

        logger.info("Guest message attached to booking %s", canonical)
        self._bus.publish(Event(
            event_type=EventType.GUEST_MESSAGE_ATTACHED,
            data={"booking_reference": canonical, "guest_email": booking.guest_email},
        ))
        return booking

    def list_for_user(self, email: str | None) -> list[Booking]:
        if not email or not email.strip():
            raise ValidationError("Email is required")
        return self._bookings.list_for_email(email.strip().lower())
