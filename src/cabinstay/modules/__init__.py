"""Domain modules of the booking engine."""
