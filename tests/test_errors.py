"""Tests for the error taxonomy and user-facing messages."""

import pytest

from fleet_console.errors import (
    GENERIC_ERROR_MESSAGE,
    ExportCancelledError,
    FleetAPIError,
    InvalidFilterError,
    MalformedResponseError,
    NetworkOrServerError,
    RateLimitedError,
    UnauthorizedError,
    user_message,
)


class TestErrorTaxonomy:
    """Test the exception hierarchy."""

    def test_hierarchy(self):
        """Test which errors share a base."""
        assert issubclass(RateLimitedError, NetworkOrServerError)
        assert issubclass(UnauthorizedError, FleetAPIError)
        assert issubclass(MalformedResponseError, FleetAPIError)
        assert issubclass(InvalidFilterError, ValueError)
        assert not issubclass(ExportCancelledError, FleetAPIError)

    def test_attributes(self):
        """Test status code and detail storage."""
        error = NetworkOrServerError("boom", status_code=502, detail="bad gateway")
        assert str(error) == "boom"
        assert error.status_code == 502
        assert error.detail == "bad gateway"


class TestUserMessage:
    """Test mapping errors to user-facing text."""

    @pytest.mark.parametrize(
        "error,expected",
        [
            (UnauthorizedError("x", status_code=401), "Your session has expired. Please log in again."),
            (NetworkOrServerError("x", status_code=403), "You do not have permission to perform this action."),
            (NetworkOrServerError("x", status_code=404), "The requested resource was not found."),
            (RateLimitedError("x", status_code=429), "Too many requests. Please try again later."),
            (NetworkOrServerError("x", status_code=500), "Server error. Please try again later."),
            (MalformedResponseError("x"), "Invalid data format received."),
            (ExportCancelledError("x"), "Export cancelled."),
        ],
    )
    def test_known_errors(self, error, expected):
        """Test the fixed messages."""
        assert user_message(error) == expected

    def test_validation_error_uses_backend_detail(self):
        """Test that 422 prefers the backend message."""
        assert user_message(NetworkOrServerError("x", 422, "Email already used")) == "Email already used"
        assert user_message(NetworkOrServerError("x", 422)).startswith("Invalid input")

    def test_other_status(self):
        """Test unknown statuses fall back to the detail or generic text."""
        assert user_message(NetworkOrServerError("x", 418, "teapot")) == "teapot"
        assert user_message(NetworkOrServerError("x", 502)) == GENERIC_ERROR_MESSAGE
        assert user_message(NetworkOrServerError("connection refused")) == GENERIC_ERROR_MESSAGE

    def test_other_exceptions(self):
        """Test non-API errors."""
        assert user_message(InvalidFilterError("Invalid date value")) == "Invalid date value"
        assert user_message(RuntimeError()) == "An unexpected error occurred"
