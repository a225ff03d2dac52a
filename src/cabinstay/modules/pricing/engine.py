"""Stay price breakdown: nightly base, cleaning fee, service fee, promo discount."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from cabinstay.config import settings
from cabinstay.models.cabin import Cabin
from cabinstay.models.promo import PERCENTAGE
from cabinstay.modules.promotions.codes import PublicPromo

logger = logging.getLogger(__name__)


@dataclass
class PriceQuote:
    cabin_id: str
    check_in: date
    check_out: date
    nights: int
    nightly_price: float
    base_price: float
    cleaning_fee: float
    service_fee: float
    discount: float
    total: float
    currency: str
    promo_code: str | None = None
    adjustments: list[str] = field(default_factory=list)  # Human-readable line items


class PricingEngine:
    """Prices a stay from the cabin's nightly rate and the `pricing` config section."""

    def __init__(self, config: dict[str, Any] | None = None) -> None:
        self._config = config if config is not None else settings.get("pricing", {})

    def quote(
        self,
        cabin: Cabin,
        check_in: date,
        check_out: date,
        promo: PublicPromo | None = None,
    ) -> PriceQuote:
        nights = (check_out - check_in).days
        base_price = round(cabin.nightly_price * nights, 2)
        adjustments = [f"{nights} night{'s' if nights != 1 else ''} x {cabin.nightly_price:.2f}"]

        cleaning_fee = round(float(self._config.get("cleaning_fee", 0.0)), 2)
        if cleaning_fee:
            adjustments.append(f"Cleaning fee: {cleaning_fee:.2f}")

        service_pct = float(self._config.get("service_fee_percentage", 0.0))
        service_fee = round(base_price * service_pct / 100, 2)
        if service_fee:
            adjustments.append(f"Service fee: {service_pct:g}%")

        discount = 0.0
        if promo is not None:
            discount = self.discount_for(promo, base_price)
            adjustments.append(f"Promo {promo.code}: -{discount:.2f}")

        total = round(base_price + cleaning_fee + service_fee - discount, 2)
        return PriceQuote(
            cabin_id=cabin.slug,
            check_in=check_in,
            check_out=check_out,
            nights=nights,
            nightly_price=cabin.nightly_price,
            base_price=base_price,
            cleaning_fee=cleaning_fee,
            service_fee=service_fee,
            discount=discount,
            total=total,
            currency=self._config.get("currency", "RON"),
            promo_code=promo.code if promo else None,
            adjustments=adjustments,
        )

    def discount_for(self, promo: PublicPromo, base_price: float) -> float:
        """Discount on the nightly subtotal; a fixed amount never exceeds it."""
        if promo.discount_type == PERCENTAGE:
            return round(base_price * promo.discount_value / 100, 2)
        return round(min(promo.discount_value, base_price), 2)
