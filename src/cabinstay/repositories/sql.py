"""SQLAlchemy-backed repositories.

Every method opens its own session and commits before returning, so each
engine operation persists immediately. Atomic operations are expressed as
single statements or single transactions guarded by table constraints.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Iterator

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from cabinstay.database import get_session
from cabinstay.errors import BookingConflictError, DuplicateError, StorageError
from cabinstay.models.booking import BLOCKING_STATUSES, CANCELLED, Booking, CabinNight
from cabinstay.models.cabin import EDITABLE_FIELDS, Cabin
from cabinstay.models.change_request import DateChangeRequest
from cabinstay.models.message import UserMessage
from cabinstay.models.promo import PromoCode
from cabinstay.models.visitor import VisitorRecord
from cabinstay.modules.availability.calculator import stay_days
from cabinstay.repositories.base import (
    BookingRepository,
    CabinRepository,
    DateChangeRequestRepository,
    PromoCodeRepository,
    UserMessageRepository,
    VisitorRepository,
)

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


def _is_night_claim_conflict(exc: IntegrityError) -> bool:
    """True when the violated constraint is the per-cabin night claim."""
    return "cabin_night" in str(getattr(exc, "orig", exc))


class _SqlRepository:
    def __init__(self, session_factory: SessionFactory | None = None) -> None:
        self._session_factory = session_factory or get_session

    @contextmanager
    def _session(self, operation: str, **keys: Any) -> Iterator[Session]:
        """Session scope that turns driver failures into StorageError."""
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as exc:
            session.rollback()
            context = {key: str(value) for key, value in keys.items()}
            logger.exception("Storage failure during %s %s", operation, context)
            raise StorageError(
                f"Storage failure during {operation}",
                details={"operation": operation, **context},
            ) from exc
        finally:
            session.close()


class SqlBookingRepository(_SqlRepository, BookingRepository):
    def get_by_reference(self, reference: str) -> Booking | None:
        with self._session("get_booking", reference=reference) as session:
            return session.scalar(select(Booking).where(Booking.booking_reference == reference))

    def list_blocking(self, cabin: str) -> list[Booking]:
        with self._session("list_blocking_bookings", cabin=cabin) as session:
            return list(
                session.scalars(
                    select(Booking).where(
                        or_(Booking.cabin_id == cabin, Booking.cabin_name == cabin),
                        Booking.status.in_(BLOCKING_STATUSES),
                    )
                )
            )

    def list_for_email(self, email: str) -> list[Booking]:
        with self._session("list_user_bookings", email=email) as session:
            return list(
                session.scalars(
                    select(Booking)
                    .where(Booking.guest_email == email.lower())
                    .order_by(Booking.created_at.desc(), Booking.id.desc())
                )
            )

    def add(self, booking: Booking) -> Booking:
        with self._session(
            "add_booking", reference=booking.booking_reference, cabin=booking.cabin_id
        ) as session:
            if booking.status in BLOCKING_STATUSES:
                booking.claimed_nights = [
                    CabinNight(cabin_id=booking.cabin_id, night=day)
                    for day in stay_days(booking.check_in, booking.check_out)
                ]
            session.add(booking)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                if not _is_night_claim_conflict(exc):
                    raise
                logger.warning(
                    "Rejected overlapping booking for %s %s..%s",
                    booking.cabin_id, booking.check_in, booking.check_out,
                )
                raise BookingConflictError(
                    "These dates are no longer available for this cabin",
                    details={
                        "cabin": booking.cabin_id,
                        "checkIn": booking.check_in.isoformat(),
                        "checkOut": booking.check_out.isoformat(),
                    },
                ) from exc
            return booking

    def cancel(self, reference: str) -> Booking | None:
        with self._session("cancel_booking", reference=reference) as session:
            booking = session.scalar(select(Booking).where(Booking.booking_reference == reference))
            if booking is None:
                return None
            # Bulk delete keeps a concurrent second cancel from tripping over already-deleted rows
            session.execute(delete(CabinNight).where(CabinNight.booking_id == booking.id))
            booking.status = CANCELLED
            session.commit()
            return booking

    def set_special_requests(self, reference: str, message: str) -> Booking | None:
        with self._session("set_special_requests", reference=reference) as session:
            booking = session.scalar(select(Booking).where(Booking.booking_reference == reference))
            if booking is None:
                return None
            booking.special_requests = message
            session.commit()
            return booking


class SqlPromoCodeRepository(_SqlRepository, PromoCodeRepository):
    def get_by_code(self, code: str) -> PromoCode | None:
        with self._session("get_promo_code", code=code) as session:
            return session.scalar(select(PromoCode).where(PromoCode.code == code))

    def list_all(self) -> list[PromoCode]:
        with self._session("list_promo_codes") as session:
            return list(session.scalars(select(PromoCode).order_by(PromoCode.created_at.desc())))

    def add(self, promo: PromoCode) -> PromoCode:
        with self._session("add_promo_code", code=promo.code) as session:
            session.add(promo)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateError(f"Promo code {promo.code} already exists") from exc
            return promo

    def redeem(self, code: str, now: datetime) -> bool:
        with self._session("redeem_promo_code", code=code) as session:
            result = session.execute(
                update(PromoCode)
                .where(
                    PromoCode.code == code,
                    PromoCode.is_active.is_(True),
                    or_(PromoCode.max_uses.is_(None), PromoCode.current_uses < PromoCode.max_uses),
                    or_(PromoCode.valid_until.is_(None), PromoCode.valid_until >= now),
                )
                .values(current_uses=PromoCode.current_uses + 1)
                .execution_options(synchronize_session=False)
            )
            session.commit()
            return result.rowcount == 1

    def release(self, code: str) -> bool:
        with self._session("release_promo_code", code=code) as session:
            result = session.execute(
                update(PromoCode)
                .where(PromoCode.code == code, PromoCode.current_uses > 0)
                .values(current_uses=PromoCode.current_uses - 1)
                .execution_options(synchronize_session=False)
            )
            session.commit()
            return result.rowcount == 1


class SqlDateChangeRequestRepository(_SqlRepository, DateChangeRequestRepository):
    def add(self, request: DateChangeRequest) -> DateChangeRequest:
        with self._session("add_date_change_request", reference=request.booking_reference) as session:
            session.add(request)
            session.commit()
            return request

    def list_for_booking(self, reference: str) -> list[DateChangeRequest]:
        with self._session("list_date_change_requests", reference=reference) as session:
            return list(
                session.scalars(
                    select(DateChangeRequest)
                    .where(DateChangeRequest.booking_reference == reference)
                    .order_by(DateChangeRequest.created_at, DateChangeRequest.id)
                )
            )

    def list_all(self) -> list[DateChangeRequest]:
        with self._session("list_date_change_requests") as session:
            return list(
                session.scalars(
                    select(DateChangeRequest).order_by(
                        DateChangeRequest.created_at.desc(), DateChangeRequest.id.desc()
                    )
                )
            )


def _upsert_statement(dialect: str, values: dict[str, Any]):
    """Build a native insert-or-increment for the visitor table."""
    table = VisitorRecord.__table__
    overwrite = ("last_visit", "user_agent", "referrer", "page_url")

    if dialect in ("sqlite", "postgresql"):
        if dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            from sqlalchemy.dialects.postgresql import insert
        stmt = insert(table).values(**values)
        changes = {name: stmt.excluded[name] for name in overwrite}
        changes["visit_count"] = table.c.visit_count + 1
        return stmt.on_conflict_do_update(index_elements=["ip_address"], set_=changes)

    if dialect in ("mysql", "mariadb"):
        from sqlalchemy.dialects.mysql import insert

        stmt = insert(table).values(**values)
        changes = {name: stmt.inserted[name] for name in overwrite}
        changes["visit_count"] = table.c.visit_count + 1
        return stmt.on_duplicate_key_update(**changes)

    raise NotImplementedError(f"No atomic visitor upsert for dialect {dialect!r}")


class SqlVisitorRepository(_SqlRepository, VisitorRepository):
    def upsert_visit(
        self,
        ip_address: str,
        *,
        user_agent: str | None,
        referrer: str | None,
        page_url: str | None,
        now: datetime,
    ) -> None:
        with self._session("record_visit", ip=ip_address) as session:
            values = {
                "ip_address": ip_address,
                "visit_count": 1,
                "first_visit": now,
                "last_visit": now,
                "user_agent": user_agent,
                "referrer": referrer,
                "page_url": page_url,
            }
            session.execute(_upsert_statement(session.get_bind().dialect.name, values))
            session.commit()

    def get(self, ip_address: str) -> VisitorRecord | None:
        with self._session("get_visitor", ip=ip_address) as session:
            return session.scalar(select(VisitorRecord).where(VisitorRecord.ip_address == ip_address))


class SqlCabinRepository(_SqlRepository, CabinRepository):
    def get_by_slug(self, slug: str) -> Cabin | None:
        with self._session("get_cabin", slug=slug) as session:
            return session.scalar(select(Cabin).where(Cabin.slug == slug))

    def list_all(self) -> list[Cabin]:
        with self._session("list_cabins") as session:
            return list(session.scalars(select(Cabin).order_by(Cabin.id)))

    def add(self, cabin: Cabin) -> Cabin:
        with self._session("add_cabin", slug=cabin.slug) as session:
            session.add(cabin)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateError(f"Cabin {cabin.slug} already exists") from exc
            return cabin

    def update(self, slug: str, changes: dict[str, Any]) -> Cabin | None:
        with self._session("update_cabin", slug=slug) as session:
            cabin = session.scalar(select(Cabin).where(Cabin.slug == slug))
            if cabin is None:
                return None
            for field_name, value in changes.items():
                if field_name in EDITABLE_FIELDS:
                    setattr(cabin, field_name, value)
            session.commit()
            return cabin


class SqlUserMessageRepository(_SqlRepository, UserMessageRepository):
    def add(self, message: UserMessage) -> UserMessage:
        with self._session("add_user_message", email=message.user_email) as session:
            session.add(message)
            session.commit()
            return message

    def get(self, message_id: int) -> UserMessage | None:
        with self._session("get_user_message", message_id=message_id) as session:
            return session.get(UserMessage, message_id)

    def list_all(self) -> list[UserMessage]:
        with self._session("list_user_messages") as session:
            return list(
                session.scalars(
                    select(UserMessage).order_by(UserMessage.created_at.desc(), UserMessage.id.desc())
                )
            )

    def mark_replied(self, message_id: int, reply: str, replied_at: datetime) -> UserMessage | None:
        with self._session("reply_user_message", message_id=message_id) as session:
            message = session.get(UserMessage, message_id)
            if message is None:
                return None
            message.status = "replied"
            message.admin_reply = reply
            message.replied_at = replied_at
            session.commit()
            return message
