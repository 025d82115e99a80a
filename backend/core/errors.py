"""Domain errors raised by the order lifecycle and catalog lookups.

Routers translate these into HTTP responses; nothing below the router layer
knows about status codes.
"""


class LifecycleError(Exception):
    """Base class for recoverable domain failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LifecycleError):
    """Bad input: missing fields, out-of-range quantity, unavailable cocktail."""


class InvalidTransition(LifecycleError):
    def __init__(self, from_status: str, to_status: str):
        super().__init__(f"Invalid status transition {from_status or '-'} -> {to_status}")
        self.from_status = from_status
        self.to_status = to_status


class NotFound(LifecycleError):
    """Unknown order, cocktail or product id."""
