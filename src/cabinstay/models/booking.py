"""Booking and cabin night-claim models."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Date, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cabinstay.database import Base, utcnow

PENDING = "pending"
CONFIRMED = "confirmed"
CANCELLED = "cancelled"
COMPLETED = "completed"

BOOKING_STATUSES = (PENDING, CONFIRMED, CANCELLED, COMPLETED)
# Only these statuses occupy a cabin
BLOCKING_STATUSES = (PENDING, CONFIRMED)


def canonical_reference(reference: str) -> str:
    """Booking references are matched case-insensitively, stored upper-case."""
    return reference.strip().upper()


class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    booking_reference: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    cabin_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)  # cabin slug
    cabin_name: Mapped[str] = mapped_column(String(200), nullable=False)
    guest_name: Mapped[str] = mapped_column(String(200), nullable=False)
    guest_email: Mapped[str] = mapped_column(String(200), nullable=False, index=True)  # stored lower-case
    guest_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    check_in: Mapped[date] = mapped_column(Date, nullable=False)
    check_out: Mapped[date] = mapped_column(Date, nullable=False)
    guests: Mapped[int] = mapped_column(Integer, default=1)
    base_price: Mapped[float] = mapped_column(Float, default=0.0)
    cleaning_fee: Mapped[float] = mapped_column(Float, default=0.0)
    service_fee: Mapped[float] = mapped_column(Float, default=0.0)
    discount: Mapped[float] = mapped_column(Float, default=0.0)
    total: Mapped[float] = mapped_column(Float, default=0.0)
    promo_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=PENDING)  # pending, confirmed, cancelled, completed
    payment_status: Mapped[str] = mapped_column(String(50), default="pending")  # pending, paid, refunded
    special_requests: Mapped[str | None] = mapped_column(Text, nullable=True)  # latest guest message only
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    claimed_nights: Mapped[list["CabinNight"]] = relationship(
        back_populates="booking", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return (
            f"<Booking {self.booking_reference} cabin={self.cabin_id!r} "
            f"{self.check_in}..{self.check_out} status={self.status!r}>"
        )

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days

    @property
    def is_blocking(self) -> bool:
        return self.status in BLOCKING_STATUSES


class CabinNight(Base):
    """One occupied calendar day of a cabin, claimed by a blocking booking.

    The unique (cabin_id, night) pair is what rejects overlapping admissions
    that race past the availability check.
    """

    __tablename__ = "cabin_nights"
    __table_args__ = (UniqueConstraint("cabin_id", "night", name="uq_cabin_night"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    cabin_id: Mapped[str] = mapped_column(String(100), nullable=False)
    night: Mapped[date] = mapped_column(Date, nullable=False)
    booking_id: Mapped[int] = mapped_column(
        ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )

    booking: Mapped["Booking"] = relationship(back_populates="claimed_nights")

    def __repr__(self) -> str:
        return f"<CabinNight cabin={self.cabin_id!r} night={self.night}>"
