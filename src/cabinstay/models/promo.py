"""Promo code model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from cabinstay.database import Base, utcnow

PERCENTAGE = "percentage"
FIXED = "fixed"
DISCOUNT_TYPES = (PERCENTAGE, FIXED)


def canonical_code(code: str) -> str:
    """Promo codes are stored and looked up upper-case."""
    return code.strip().upper()


class PromoCode(Base):
    __tablename__ = "promo_codes"
    __table_args__ = (
        CheckConstraint("current_uses >= 0", name="ck_promo_uses_non_negative"),
        CheckConstraint(
            "max_uses IS NULL OR current_uses <= max_uses", name="ck_promo_uses_within_limit"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    discount_type: Mapped[str] = mapped_column(String(20), nullable=False)  # percentage, fixed
    discount_value: Mapped[float] = mapped_column(Float, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    valid_until: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)  # naive UTC
    max_uses: Mapped[int | None] = mapped_column(Integer, nullable=True)
    current_uses: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    def __repr__(self) -> str:
        return f"<PromoCode {self.code!r} uses={self.current_uses}/{self.max_uses}>"
