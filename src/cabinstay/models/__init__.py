"""Database models."""

from cabinstay.models.booking import Booking, CabinNight
from cabinstay.models.cabin import Cabin
from cabinstay.models.change_request import DateChangeRequest
from cabinstay.models.message import UserMessage
from cabinstay.models.promo import PromoCode
from cabinstay.models.visitor import VisitorRecord

__all__ = [
    "Booking",
    "Cabin",
    "CabinNight",
    "DateChangeRequest",
    "PromoCode",
    "UserMessage",
    "VisitorRecord",
]
