"""
Error taxonomy for EventKit Gateway.

Every failure that reaches the CLI boundary is a GatewayError subclass and is
rendered as a single {"error": message} JSON object with a non-zero exit.
Geocoding failures never raise; they degrade to an unresolved location.
"""


class GatewayError(Exception):
    """Base class for all errors reported to the user."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(GatewayError):
    """Raised for malformed dates, enums or recurrence tokens."""
    pass


class PermissionDeniedError(GatewayError):
    """Raised when EventKit access cannot be obtained.

    Attributes:
        reason: One of "channel_failure", "both_denied", "timeout"
    """

    CHANNEL_FAILURE = "channel_failure"
    BOTH_DENIED = "both_denied"
    TIMEOUT = "timeout"

    def __init__(self, reason: str, message: str):
        self.reason = reason
        super().__init__(message)


class NotFoundError(GatewayError):
    """Raised when an identifier or alias does not match anything in the store."""
    pass


class PersistenceError(GatewayError):
    """Raised when the store refuses a save, remove or fetch."""
    pass
