"""Error taxonomy for retrieval, export and filter composition."""

from typing import Optional


class FleetAPIError(Exception):
    """Base class for failures talking to the fleet backend."""

    def __init__(self, message: str, status_code: Optional[int] = None, detail: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        # Message reported by the backend body, if any
        self.detail = detail


class UnauthorizedError(FleetAPIError):
    """The session token was rejected; the caller must clear it and re-authenticate."""


class MalformedResponseError(FleetAPIError):
    """The backend answered with a body of unexpected shape."""


class NetworkOrServerError(FleetAPIError):
    """Transport failure or non-success HTTP status. Safe for the user to retry."""


class RateLimitedError(NetworkOrServerError):
    """HTTP 429 persisted after the configured retries."""


class ExportCancelledError(Exception):
    """A bulk export was cancelled before it finished."""


class InvalidFilterError(ValueError):
    """A raw filter input could not be normalized."""


GENERIC_ERROR_MESSAGE = "An error occurred while processing your request."

STATUS_MESSAGES = {
    401: "Your session has expired. Please log in again.",
    403: "You do not have permission to perform this action.",
    404: "The requested resource was not found.",
    429: "Too many requests. Please try again later.",
    500: "Server error. Please try again later.",
}


def user_message(error: BaseException) -> str:
    """
    Map an error to the text shown to the user.

    Args:
        error: Exception raised by a fetch, export or composition.

    Returns:
        User-facing message.
    """
    if isinstance(error, UnauthorizedError):
        return STATUS_MESSAGES[401]

    if isinstance(error, MalformedResponseError):
        return "Invalid data format received."

    if isinstance(error, FleetAPIError):
        status = error.status_code
        if status == 422:
            return error.detail or "Invalid input. Please check your data and try again."
        if status in STATUS_MESSAGES:
            return STATUS_MESSAGES[status]
        return error.detail or GENERIC_ERROR_MESSAGE

    if isinstance(error, ExportCancelledError):
        return "Export cancelled."

    return str(error) or "An unexpected error occurred"
