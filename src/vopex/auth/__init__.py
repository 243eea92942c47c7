"""Authentication and session management.

* :class:`SessionStore` persists the token and user record.
* :class:`AuthService` talks to the ``/auth`` endpoints.
* :class:`BearerTokenInterceptor` attaches the token to every request and
  clears the session when the API answers 401.
"""

from vopex.auth.interceptor import BearerTokenInterceptor, RedirectHandler
from vopex.auth.service import AuthService
from vopex.auth.session import SessionStore, decode_token_expiry, is_token_expired

__all__ = [
    "AuthService",
    "BearerTokenInterceptor",
    "RedirectHandler",
    "SessionStore",
    "decode_token_expiry",
    "is_token_expired",
]
