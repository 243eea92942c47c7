"""Exception hierarchy for vopex.

All exceptions inherit from :class:`VopexError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`vopex.exit_codes`.
The CLI entry point in :func:`vopex.app.main` catches ``VopexError`` and
exits with that code; anything else produces a crash log.

HTTP failures are classified into the buckets the API client recognises
(see :meth:`vopex.client.ApiClient._map_response_error`)::

    VopexError (exit 1)
    +-- InvalidUsageError       (exit 2)
    +-- ConfigError             (exit 1)
    +-- InterceptorError        (exit 10)
    +-- ConnectionError_        (exit 6)
    +-- HTTPError
        +-- BadRequestError     (400, exit 7)
        +-- AuthError           (exit 3)
        |   +-- UnauthorizedError  (401)
        |   +-- ForbiddenError     (403)
        +-- NotFoundError       (404, exit 4)
        +-- ServerError         (500, exit 5)
        +-- ApiError            (any other status >= 400, exit 8)
"""

from __future__ import annotations

from typing import Any, Optional

from vopex.exit_codes import (
    EXIT_API_ERROR,
    EXIT_AUTH_FAILURE,
    EXIT_BAD_REQUEST,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INTERCEPTOR_ERROR,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
)


class VopexError(Exception):
    """Base exception for all vopex errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(VopexError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(VopexError):
    """Raised for configuration problems (missing profiles, invalid JSON, bad credential sources)."""

    exit_code = EXIT_GENERIC_FAILURE


class InterceptorError(VopexError):
    """Raised when an interceptor fails to load or initialise."""

    exit_code = EXIT_INTERCEPTOR_ERROR


class ConnectionError_(VopexError):
    """Raised when a request was sent but no response was received.

    Covers timeouts, DNS failures and refused connections. Named with a
    trailing underscore to avoid shadowing the built-in ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class HTTPError(VopexError):
    """Base class for errors derived from an HTTP response status.

    Args:
        message: Human-readable description (``"HTTP 404: ..."``).
        status_code: The response status code.
        detail: The parsed response body, if any.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 0,
        detail: Optional[Any] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class BadRequestError(HTTPError):
    """Raised when the API returns HTTP 400."""

    exit_code = EXIT_BAD_REQUEST


class AuthError(HTTPError):
    """Raised when authentication or authorisation fails."""

    exit_code = EXIT_AUTH_FAILURE


class UnauthorizedError(AuthError):
    """Raised when the API returns HTTP 401 (missing or expired credentials)."""


class ForbiddenError(AuthError):
    """Raised when the API returns HTTP 403 (insufficient permissions)."""


class NotFoundError(HTTPError):
    """Raised when the API returns HTTP 404."""

    exit_code = EXIT_NOT_FOUND


class ServerError(HTTPError):
    """Raised when the API returns HTTP 500."""

    exit_code = EXIT_SERVER_ERROR


class ApiError(HTTPError):
    """Raised for any other error status (409, 422, 502, ...)."""

    exit_code = EXIT_API_ERROR


class DecryptionError(VopexError):
    """Raised by :class:`~vopex.security.Cipher` when a token cannot be decrypted."""
