"""Repository interfaces, one per entity.

The engine only talks to these; `cabinstay.repositories.sql` backs them with
SQLAlchemy and the test suite backs them with in-memory fakes. Operations
that must be atomic (admission, redemption, visit upsert) are single methods
so the implementation can make them atomic at the storage layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from cabinstay.models.booking import Booking
from cabinstay.models.cabin import Cabin
from cabinstay.models.change_request import DateChangeRequest
from cabinstay.models.message import UserMessage
from cabinstay.models.promo import PromoCode
from cabinstay.models.visitor import VisitorRecord


class BookingRepository(ABC):
    @abstractmethod
    def get_by_reference(self, reference: str) -> Booking | None:
        """Exact match on an already-canonical reference."""

    @abstractmethod
    def list_blocking(self, cabin: str) -> list[Booking]:
        """Pending and confirmed bookings whose cabin slug or name equals `cabin`."""

    @abstractmethod
    def list_for_email(self, email: str) -> list[Booking]:
        """Bookings for a guest email, newest first."""

    @abstractmethod
    def add(self, booking: Booking) -> Booking:
        """Insert a booking and claim its nights as one atomic unit.

        Raises BookingConflictError when any claimed night is already taken.
        """

    @abstractmethod
    def cancel(self, reference: str) -> Booking | None:
        """Set status to cancelled and release the claimed nights."""

    @abstractmethod
    def set_special_requests(self, reference: str, message: str) -> Booking | None:
        """Overwrite the booking's special requests."""


class PromoCodeRepository(ABC):
    @abstractmethod
    def get_by_code(self, code: str) -> PromoCode | None: ...

    @abstractmethod
    def list_all(self) -> list[PromoCode]: ...

    @abstractmethod
    def add(self, promo: PromoCode) -> PromoCode:
        """Raises DuplicateError when the code already exists."""

    @abstractmethod
    def redeem(self, code: str, now: datetime) -> bool:
        """Atomically consume one use if the code is still redeemable at `now`.

        Compare and increment happen as one indivisible step; returns False
        when the code is missing, inactive, expired or exhausted.
        """

    @abstractmethod
    def release(self, code: str) -> bool:
        """Give back one use, never going below zero."""


class DateChangeRequestRepository(ABC):
    @abstractmethod
    def add(self, request: DateChangeRequest) -> DateChangeRequest: ...

    @abstractmethod
    def list_for_booking(self, reference: str) -> list[DateChangeRequest]: ...

    @abstractmethod
    def list_all(self) -> list[DateChangeRequest]:
        """Newest first."""


class VisitorRepository(ABC):
    @abstractmethod
    def upsert_visit(
        self,
        ip_address: str,
        *,
        user_agent: str | None,
        referrer: str | None,
        page_url: str | None,
        now: datetime,
    ) -> None:
        """Insert with visit_count=1, or increment and overwrite, atomically."""

    @abstractmethod
    def get(self, ip_address: str) -> VisitorRecord | None: ...


class CabinRepository(ABC):
    @abstractmethod
    def get_by_slug(self, slug: str) -> Cabin | None: ...

    @abstractmethod
    def list_all(self) -> list[Cabin]: ...

    @abstractmethod
    def add(self, cabin: Cabin) -> Cabin: ...

    @abstractmethod
    def update(self, slug: str, changes: dict[str, Any]) -> Cabin | None: ...


class UserMessageRepository(ABC):
    @abstractmethod
    def add(self, message: UserMessage) -> UserMessage: ...

    @abstractmethod
    def get(self, message_id: int) -> UserMessage | None: ...

    @abstractmethod
    def list_all(self) -> list[UserMessage]:
        """Newest first."""

    @abstractmethod
    def mark_replied(self, message_id: int, reply: str, replied_at: datetime) -> UserMessage | None: ...
