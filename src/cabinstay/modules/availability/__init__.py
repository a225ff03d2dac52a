from cabinstay.modules.availability.calculator import (
    AvailabilityCalculator,
    occupied_days,
    ranges_conflict,
    stay_days,
)

__all__ = ["AvailabilityCalculator", "occupied_days", "ranges_conflict", "stay_days"]
