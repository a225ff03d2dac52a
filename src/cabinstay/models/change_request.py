"""Date-change request model."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Date, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from cabinstay.database import Base, utcnow


class DateChangeRequest(Base):
    __tablename__ = "date_change_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Looked up by value, not a foreign key: the request never owns the booking
    booking_reference: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    original_check_in: Mapped[date] = mapped_column(Date, nullable=False)
    original_check_out: Mapped[date] = mapped_column(Date, nullable=False)
    requested_check_in: Mapped[date] = mapped_column(Date, nullable=False)
    requested_check_out: Mapped[date] = mapped_column(Date, nullable=False)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    guest_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    guest_email: Mapped[str | None] = mapped_column(String(200), nullable=True)
    cabin_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="pending")  # pending, approved, rejected
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return (
            f"<DateChangeRequest id={self.id} ref={self.booking_reference} "
            f"{self.requested_check_in}..{self.requested_check_out} status={self.status!r}>"
        )
