"""Cabin inventory: public reads, admin edits, seeding from config.yaml."""

from __future__ import annotations

import logging
import math
from typing import Any

from cabinstay.auth import Identity, require_admin
from cabinstay.config import settings
from cabinstay.errors import NotFoundError, ValidationError
from cabinstay.events import Event, EventBus, EventType, event_bus
from cabinstay.models.cabin import EDITABLE_FIELDS, Cabin
from cabinstay.repositories.base import CabinRepository

logger = logging.getLogger(__name__)


def _clean_updates(updates: dict[str, Any]) -> dict[str, Any]:
    """Coerce admin edits to column types, raising ValidationError on bad input."""
    cleaned: dict[str, Any] = {}
    for field, value in updates.items():
        if field == "nightly_price":
            try:
                price = float(value)
            except (TypeError, ValueError, OverflowError):
                price = None
            if isinstance(value, bool) or price is None or not math.isfinite(price):
                raise ValidationError("Nightly price must be a number", details={"field": field})
            if price < 0:
                raise ValidationError("Nightly price cannot be negative")
            cleaned[field] = price
        elif field == "max_guests":
            try:
                guests = int(value)
            except (TypeError, ValueError, OverflowError):
                guests = None
            if isinstance(value, bool) or guests is None or (guests != value and str(guests) != value):
                raise ValidationError("Max guests must be a whole number", details={"field": field})
            if guests < 1:
                raise ValidationError("A cabin must sleep at least one guest")
            cleaned[field] = guests
        elif field == "is_active":
            if not isinstance(value, bool):
                raise ValidationError("is_active must be true or false", details={"field": field})
            cleaned[field] = value
        elif field == "name":
            if not isinstance(value, str) or not value.strip():
                raise ValidationError("Cabin name cannot be empty", details={"field": field})
            cleaned[field] = value.strip()
        elif field == "description":
            if value is not None and not isinstance(value, str):
                raise ValidationError("Description must be text", details={"field": field})
            cleaned[field] = value
    return cleaned


class CabinCatalog:
    def __init__(self, cabins: CabinRepository, *, bus: EventBus | None = None) -> None:
        self._cabins = cabins
        self._bus = bus or event_bus

    def get(self, slug: str) -> Cabin:
        """Active cabin by slug; inactive cabins are hidden from guests."""
        cabin = self._cabins.get_by_slug(slug)
        if cabin is None or not cabin.is_active:
            raise NotFoundError("Cabin not found")
        return cabin

    def list_cabins(self) -> list[Cabin]:
        return self._cabins.list_all()

    def update(self, identity: Identity | None, slug: str | None, updates: dict[str, Any]) -> Cabin:
        require_admin(identity)
        if not slug:
            raise ValidationError("Cabin ID is required")

        unknown = sorted(set(updates) - set(EDITABLE_FIELDS))
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(unknown)}")
        updates = _clean_updates(updates)

        cabin = self._cabins.update(slug, updates)
        if cabin is None:
            raise NotFoundError("Cabin not found")

        logger.info("Cabin %s updated by %s: %s", slug, identity.email, sorted(updates))
        self._bus.publish(Event(
            event_type=EventType.CABIN_UPDATED,
            data={"cabin": slug, "fields": sorted(updates)},
        ))
        return cabin

    def seed_from_config(self, cabin_configs: list[dict[str, Any]] | None = None) -> int:
        """Insert cabins from config.yaml that are not in the DB yet.

        Existing cabins are left alone so admin edits survive restarts.
        """
        if cabin_configs is None:
            cabin_configs = settings.get("cabins", [])

        seeded = 0
        for cabin_cfg in cabin_configs:
            if self._cabins.get_by_slug(cabin_cfg["slug"]) is not None:
                continue
            cabin = Cabin(
                slug=cabin_cfg["slug"],
                name=cabin_cfg.get("name", cabin_cfg["slug"]),
                nightly_price=float(cabin_cfg.get("nightly_price", 0.0)),
                max_guests=int(cabin_cfg.get("max_guests", 2)),
                is_active=bool(cabin_cfg.get("is_active", True)),
                description=cabin_cfg.get("description"),
            )
            self._cabins.add(cabin)
            seeded += 1
            logger.info("Seeded cabin: %s", cabin.name)
        return seeded
