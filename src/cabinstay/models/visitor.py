"""Visitor log model, one row per IP address."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from cabinstay.database import Base, utcnow


class VisitorRecord(Base):
    __tablename__ = "visitor_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ip_address: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    visit_count: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    first_visit: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    last_visit: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    referrer: Mapped[str | None] = mapped_column(Text, nullable=True)
    page_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<VisitorRecord ip={self.ip_address!r} visits={self.visit_count}>"
