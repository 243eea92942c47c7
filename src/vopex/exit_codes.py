"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~vopex.exceptions.VopexError` subclass, so shell
scripts can branch on the failure class without parsing stderr.

Example::

    $ vopex leads get 42
    $ echo $?
    4   # EXIT_NOT_FOUND -- the lead does not exist
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_AUTH_FAILURE = 3
"""Authentication or authorisation failed (HTTP 401 / 403)."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The API returned a server error (HTTP 500)."""

EXIT_CONNECTION_ERROR = 6
"""The request was sent but no response came back."""

EXIT_BAD_REQUEST = 7
"""The API rejected the request payload (HTTP 400)."""

EXIT_API_ERROR = 8
"""The API returned an error status outside the known buckets."""

EXIT_INTERCEPTOR_ERROR = 10
"""An interceptor failed to load or initialise."""
