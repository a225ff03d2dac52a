"""Promo code validation, atomic redemption, and admin creation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable

from cabinstay.auth import Identity, require_admin
from cabinstay.errors import ValidationError
from cabinstay.events import Event, EventBus, EventType, event_bus
from cabinstay.models.promo import DISCOUNT_TYPES, PERCENTAGE, PromoCode, canonical_code
from cabinstay.repositories.base import PromoCodeRepository

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class PromoRejection(str, Enum):
    NOT_FOUND = "not found"
    INACTIVE = "inactive"
    EXPIRED = "expired"
    LIMIT_REACHED = "limit reached"


REJECTION_MESSAGES = {
    PromoRejection.NOT_FOUND: "Invalid promo code",
    PromoRejection.INACTIVE: "This promo code is no longer active",
    PromoRejection.EXPIRED: "This promo code has expired",
    PromoRejection.LIMIT_REACHED: "This promo code has reached its usage limit",
}


@dataclass(frozen=True)
class PublicPromo:
    """What a caller may see about a valid code. Usage counters stay private."""

    code: str
    discount_type: str
    discount_value: float
    description: str | None = None

    @classmethod
    def from_model(cls, promo: PromoCode) -> PublicPromo:
        return cls(
            code=promo.code,
            discount_type=promo.discount_type,
            discount_value=promo.discount_value,
            description=promo.description,
        )


@dataclass(frozen=True)
class PromoValidation:
    valid: bool
    reason: PromoRejection | None = None
    promo: PublicPromo | None = None

    @property
    def message(self) -> str | None:
        return REJECTION_MESSAGES[self.reason] if self.reason else None


def as_utc(value: datetime) -> datetime:
    """Stored timestamps are naive UTC; compare everything as aware UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _utc_clock() -> datetime:
    return datetime.now(timezone.utc)


class PromoCodeValidator:
    """Validates codes without side effects; redemption is a separate atomic step."""

    def __init__(
        self,
        promo_codes: PromoCodeRepository,
        *,
        bus: EventBus | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._promo_codes = promo_codes
        self._bus = bus or event_bus
        self._clock = clock or _utc_clock

    def validate(self, code: str | None, now: datetime | None = None) -> PromoValidation:
        """Check a code, short-circuiting on the first failed rule.

        Order: not found, inactive, expired (strictly after valid_until),
        usage limit reached. Never mutates the code.
        """
        if not code or not code.strip():
            raise ValidationError("Promo code is required")

        promo = self._promo_codes.get_by_code(canonical_code(code))
        if promo is None:
            return PromoValidation(valid=False, reason=PromoRejection.NOT_FOUND)
        if not promo.is_active:
            return PromoValidation(valid=False, reason=PromoRejection.INACTIVE)

        current = as_utc(now or self._clock())
        if promo.valid_until is not None and current > as_utc(promo.valid_until):
            return PromoValidation(valid=False, reason=PromoRejection.EXPIRED)
        if promo.max_uses is not None and promo.current_uses >= promo.max_uses:
            return PromoValidation(valid=False, reason=PromoRejection.LIMIT_REACHED)

        return PromoValidation(valid=True, promo=PublicPromo.from_model(promo))

    def redeem(self, code: str, now: datetime | None = None) -> bool:
        """Consume one use. Returns False if the code is no longer redeemable."""
        canonical = canonical_code(code)
        current = as_utc(now or self._clock()).replace(tzinfo=None)
        redeemed = self._promo_codes.redeem(canonical, current)
        if not redeemed:
            logger.warning("Promo code %s could not be redeemed", canonical)
            return False

        logger.info("Redeemed promo code %s", canonical)
        self._bus.publish(Event(event_type=EventType.PROMO_REDEEMED, data={"code": canonical}))
        return True

    def release(self, code: str) -> bool:
        """Return a use taken by a booking that was never committed."""
        canonical = canonical_code(code)
        released = self._promo_codes.release(canonical)
        if released:
            logger.info("Released one use of promo code %s", canonical)
        return released


class PromoCodeAdmin:
    """Admin-only promo code management."""

    def __init__(self, promo_codes: PromoCodeRepository) -> None:
        self._promo_codes = promo_codes

    def create(
        self,
        identity: Identity | None,
        *,
        code: str | None,
        discount_type: str | None,
        discount_value: float | None,
        max_uses: int | None = None,
        valid_until: datetime | None = None,
        description: str | None = None,
    ) -> PromoCode:
        require_admin(identity)

        if not code or not code.strip() or not discount_type or not discount_value:
            raise ValidationError("Code, discount type, and discount value are required")
        if discount_type not in DISCOUNT_TYPES:
            raise ValidationError(f"Discount type must be one of {', '.join(DISCOUNT_TYPES)}")
        if discount_value <= 0:
            raise ValidationError("Discount value must be positive")
        if discount_type == PERCENTAGE and not 1 <= discount_value <= 100:
            raise ValidationError("Percentage discount must be between 1 and 100")
        if max_uses is not None and max_uses < 1:
            raise ValidationError("Max uses must be at least 1")

        promo = PromoCode(
            code=canonical_code(code),
            discount_type=discount_type,
            discount_value=float(discount_value),
            is_active=True,
            valid_until=as_utc(valid_until).replace(tzinfo=None) if valid_until else None,
            max_uses=max_uses,
            current_uses=0,
            description=description or None,
        )
        created = self._promo_codes.add(promo)
        logger.info("Created promo code %s", created.code)
        return created

    def list_codes(self, identity: Identity | None) -> list[PromoCode]:
        require_admin(identity)
        return self._promo_codes.list_all()
