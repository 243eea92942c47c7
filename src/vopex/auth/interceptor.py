"""Bearer token interceptor.

Attaches ``Authorization: Bearer <token>`` from the
:class:`~vopex.auth.session.SessionStore` to every request. When the API
answers 401 the stored session is cleared and the redirect handler is asked
to send the user to the login route.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from vopex.auth.session import SessionStore
from vopex.exceptions import UnauthorizedError
from vopex.interceptors.base import Interceptor
from vopex.interceptors.chain import RequestContext

logger = logging.getLogger(__name__)

RedirectHandler = Callable[[str], None]


class BearerTokenInterceptor(Interceptor):
    """Inject the session token and react to 401 responses.

    Args:
        sessions: Where the token is read from and cleared on 401.
        redirect: Called with *login_route* after the session is cleared.
        login_route: Passed to *redirect*.
    """

    def __init__(
        self,
        sessions: SessionStore,
        redirect: Optional[RedirectHandler] = None,
        login_route: str = "/login",
    ) -> None:
        self._sessions = sessions
        self._redirect = redirect
        self._login_route = login_route

    @property
    def name(self) -> str:
        return "bearer-token"

    @property
    def description(self) -> str:
        return "Adds the session bearer token and clears the session on 401"

    def on_request(self, ctx: RequestContext) -> None:
        token = self._sessions.token
        if token:
            ctx.headers["Authorization"] = f"Bearer {token}"

    def on_error(self, error: Exception, ctx: RequestContext) -> None:
        if not isinstance(error, UnauthorizedError):
            return
        logger.warning("Session rejected by %s; clearing stored credentials", ctx.url)
        self._sessions.clear()
        if self._redirect is not None:
            self._redirect(self._login_route)
