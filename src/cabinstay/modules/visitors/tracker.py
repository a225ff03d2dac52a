"""Per-IP visitor counting.

Tracking is best effort: a failed write is logged and otherwise ignored so
it can never break the page that triggered it.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Callable

from cabinstay.database import utcnow
from cabinstay.repositories.base import VisitorRepository

logger = logging.getLogger(__name__)

UNKNOWN_IP = "unknown"


def client_ip(headers: Mapping[str, str], peer: str | None = None) -> str:
    """First hop of X-Forwarded-For, then X-Real-IP, then the socket peer, else "unknown"."""
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()
    return peer or UNKNOWN_IP


class VisitorDedupeTracker:
    def __init__(
        self,
        visitors: VisitorRepository,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._visitors = visitors
        self._clock = clock or utcnow

    def record_visit(
        self,
        ip_address: str | None,
        user_agent: str | None = None,
        referrer: str | None = None,
        page_url: str | None = None,
    ) -> None:
        ip = (ip_address or "").strip() or UNKNOWN_IP
        try:
            self._visitors.upsert_visit(
                ip,
                user_agent=user_agent,
                referrer=referrer,
                page_url=page_url,
                now=self._clock(),
            )
        except Exception:
            logger.exception("Failed to record visit from %s", ip)
            return
        logger.debug("Recorded visit from %s", ip)
