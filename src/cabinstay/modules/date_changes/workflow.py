"""Guest requests to move a booking to new dates.

A request is only a record for the admin to act on. Submitting one never
touches the booking itself.
"""

from __future__ import annotations

import logging
from datetime import date

from cabinstay.auth import Identity, require_admin
from cabinstay.errors import NotFoundError, ValidationError
from cabinstay.events import Event, EventBus, EventType, event_bus
from cabinstay.models.change_request import DateChangeRequest
from cabinstay.modules.bookings.lifecycle import require_reference
from cabinstay.repositories.base import BookingRepository, DateChangeRequestRepository

logger = logging.getLogger(__name__)


class DateChangeRequestWorkflow:
    def __init__(
        self,
        bookings: BookingRepository,
        requests: DateChangeRequestRepository,
        *,
        bus: EventBus | None = None,
    ) -> None:
        self._bookings = bookings
        self._requests = requests
        self._bus = bus or event_bus

    def submit(
        self,
        reference: str | None,
        requested_check_in: date | None,
        requested_check_out: date | None,
        message: str | None = None,
    ) -> DateChangeRequest:
        """Record a pending request with a snapshot of the booking's current dates.

        Availability of the requested range is not checked here; the admin
        decides when reviewing the request.
        """
        canonical = require_reference(reference)
        if requested_check_in is None or requested_check_out is None:
            raise ValidationError("New check-in and check-out dates are required")
        if requested_check_in >= requested_check_out:
            raise ValidationError("New check-out must be after new check-in")

        booking = self._bookings.get_by_reference(canonical)
        if booking is None:
            raise NotFoundError("Booking not found")

        request = DateChangeRequest(
            booking_reference=canonical,
            original_check_in=booking.check_in,
            original_check_out=booking.check_out,
            requested_check_in=requested_check_in,
            requested_check_out=requested_check_out,
            message=message.strip() if message and message.strip() else None,
            guest_name=booking.guest_name,
            guest_email=booking.guest_email,
            cabin_name=booking.cabin_name,
            status="pending",
        )
        created = self._requests.add(request)

        logger.info(
            "Date change requested for %s: %s..%s -> %s..%s",
            canonical, booking.check_in, booking.check_out, requested_check_in, requested_check_out,
        )
        self._bus.publish(Event(
            event_type=EventType.DATE_CHANGE_REQUESTED,
            data={
                "booking_reference": canonical,
                "requested_check_in": requested_check_in.isoformat(),
                "requested_check_out": requested_check_out.isoformat(),
            },
        ))
        return created

    def list_for_booking(self, reference: str | None) -> list[DateChangeRequest]:
        return self._requests.list_for_booking(require_reference(reference))

    def list_requests(self, identity: Identity | None) -> list[DateChangeRequest]:
        require_admin(identity)
        return self._requests.list_all()
