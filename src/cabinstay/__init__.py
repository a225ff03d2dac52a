"""CabinStay: booking lifecycle and availability engine for a small set of cabins."""

__version__ = "0.1.0"
