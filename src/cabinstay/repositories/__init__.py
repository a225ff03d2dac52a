"""Storage seam: repository interfaces and their SQLAlchemy implementations."""

from cabinstay.repositories.base import (
    BookingRepository,
    CabinRepository,
    DateChangeRequestRepository,
    PromoCodeRepository,
    UserMessageRepository,
    VisitorRepository,
)
from cabinstay.repositories.sql import (
    SqlBookingRepository,
    SqlCabinRepository,
    SqlDateChangeRequestRepository,
    SqlPromoCodeRepository,
    SqlUserMessageRepository,
    SqlVisitorRepository,
)

__all__ = [
    "BookingRepository",
    "CabinRepository",
    "DateChangeRequestRepository",
    "PromoCodeRepository",
    "SqlBookingRepository",
    "SqlCabinRepository",
    "SqlDateChangeRequestRepository",
    "SqlPromoCodeRepository",
    "SqlUserMessageRepository",
    "SqlVisitorRepository",
    "UserMessageRepository",
    "VisitorRepository",
]
