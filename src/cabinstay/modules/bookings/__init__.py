from cabinstay.modules.bookings.lifecycle import (
    BookingLifecycleManager,
    BookingRequest,
    generate_reference,
    require_reference,
)

__all__ = ["BookingLifecycleManager", "BookingRequest", "generate_reference", "require_reference"]
