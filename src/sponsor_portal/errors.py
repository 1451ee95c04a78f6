"""Error taxonomy shared by services, adapters and the HTTP layer.

Every error carries the status code the API layer should answer with, so the
boundary can map errors without inspecting messages.
"""

from datetime import datetime

INVALID_CREDENTIALS = "Invalid email or sponsor code, or sponsorship is not active"
SESSION_EXPIRED = "Your session has expired. Please sign in again."
UNAUTHORIZED = "Unauthorized"
TOO_MANY_REQUESTS = "Too many requests. Please try again later."
GENERIC_FAILURE = "Something went wrong. Please try again later."
INVALID_REQUEST = "Invalid request"


class PortalError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(PortalError):
    """Input failed shape or format checks."""

    status_code = 400


class AuthenticationError(PortalError):
    """Missing or invalid sponsor session or admin token."""

    status_code = 401


class NotFoundError(PortalError):
    """No matching sponsorship, child or update."""

    status_code = 404


class InvalidTransitionError(PortalError):
    """An update review transition is not allowed from the current state."""

    status_code = 409


class ThrottledError(PortalError):
    """Rate limit or update-request cooldown exceeded."""

    status_code = 429

    def __init__(
        self,
        message: str,
        retry_after_seconds: int,
        next_eligible_at: datetime | None = None,
    ) -> None:
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds
        self.next_eligible_at = next_eligible_at


class StoreError(PortalError):
    """The record store was unreachable or rejected a query."""

    status_code = 500

    def __init__(
        self,
        operation: str,
        entity: str,
        message: str = "Database request failed",
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.entity = entity


class GatewayError(PortalError):
    """The payment gateway is not configured or failed."""

    status_code = 502
