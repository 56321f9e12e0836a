"""Exception types raised by the pricing engine and its collaborators."""


class PricingError(Exception):
    """Base class for all pricing errors."""


class PricingInputError(PricingError, ValueError):
    """Request data cannot be priced (non-positive hours, empty schedule, ...)."""


class SnapshotNotFoundError(PricingError, LookupError):
    """No active rule snapshot matches the lookup key."""
