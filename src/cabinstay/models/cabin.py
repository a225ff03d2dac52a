"""Cabin model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from cabinstay.database import Base, utcnow

# Fields an admin may change on an existing cabin
EDITABLE_FIELDS = ("name", "nightly_price", "max_guests", "is_active", "description")


class Cabin(Base):
    __tablename__ = "cabins"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    nightly_price: Mapped[float] = mapped_column(Float, default=0.0)
    max_guests: Mapped[int] = mapped_column(Integer, default=2)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    def __repr__(self) -> str:
        return f"<Cabin {self.slug!r} name={self.name!r}>"
