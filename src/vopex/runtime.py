"""One object that wires the store, cache, client, auth and services together.

The CLI builds a :class:`Runtime` per invocation; library users can do the
same::

    with Runtime.from_config(profile_name="acme") as rt:
        rt.auth.login("ada@example.com", "s3cret")
        for lead in rt.leads.list(status="new"):
            ...
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import httpx

from vopex.auth import AuthService, BearerTokenInterceptor, RedirectHandler, SessionStore
from vopex.cache import Cache, ResponseCache
from vopex.cache.response import NAMESPACE as RESPONSES_NAMESPACE
from vopex.client import ApiClient
from vopex.config import get_data_dir, get_store_dir, resolve_config
from vopex.events import EventBus, event_bus
from vopex.exceptions import ConfigError
from vopex.flags import FeatureFlags
from vopex.interceptors import InterceptorManager
from vopex.models import GlobalConfig, Profile, UserContext
from vopex.security import Cipher, key_path, load_or_create_key
from vopex.services import (
    AgentService,
    AIService,
    AnalyticsService,
    CampaignService,
    LeadService,
    NotificationService,
    OpportunityService,
    PredictionEngine,
    SocialMediaService,
    UserService,
)
from vopex.services.predictions import NAMESPACE as PREDICTIONS_NAMESPACE
from vopex.storage import KeyValueStore

logger = logging.getLogger(__name__)

USER_SCOPED_NAMESPACES = (RESPONSES_NAMESPACE, PREDICTIONS_NAMESPACE)


class Runtime:
    """Everything needed to talk to one CRM deployment.

    Args:
        profile: The deployment to talk to.
        config: Global settings (cache, storage, interceptors, environment).
        store: Persistent key/value store for this profile.
        transport: Custom :mod:`httpx` transport, mainly for tests.
        redirect: Called with the login route when the session is dropped.
            By default the route is only recorded in :attr:`redirect_target`.
        events: Event bus for domain events.
        discover: Load entry-point interceptors.
        clock: Epoch-seconds clock shared by cache and auth.
    """

    def __init__(
        self,
        profile: Profile,
        config: GlobalConfig,
        store: KeyValueStore,
        transport: Optional[httpx.BaseTransport] = None,
        redirect: Optional[RedirectHandler] = None,
        events: Optional[EventBus] = None,
        discover: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.profile = profile
        self.config = config
        self.store = store
        self.events = events if events is not None else event_bus
        self.redirect_target: Optional[str] = None
        self._redirect = redirect

        self.cache = Cache(store, config.cache, clock=clock)
        self.response_cache = ResponseCache(self.cache, config.cache)
        self.sessions = SessionStore(store, encrypted=config.storage.encrypt_session)

        self.interceptors = InterceptorManager()
        self.interceptors.register(
            BearerTokenInterceptor(self.sessions, self._on_redirect, profile.login_route), config
        )
        if discover:
            self.interceptors.discover(config)

        self.client = ApiClient(
            profile,
            chain=self.interceptors.get_chain(),
            cache=self.response_cache if config.cache.responses else None,
            transport=transport,
        )
        self.auth = AuthService(
            self.client,
            self.sessions,
            self._on_redirect,
            profile.login_route,
            clock=clock,
            on_user_change=self.forget_user_data,
        )
        self.flags = FeatureFlags(self.client, store, environment=config.environment)

        self.leads = LeadService(self.client, self.events)
        self.opportunities = OpportunityService(self.client, self.events)
        self.campaigns = CampaignService(self.client, self.events)
        self.social = SocialMediaService(self.client, self.events)
        self.agents = AgentService(self.client, self.events)
        self.notifications = NotificationService(self.client, self.events)
        self.analytics = AnalyticsService(self.client, self.events)
        self.users = UserService(self.client, self.sessions, self.events)
        self.ai = AIService(self.client, self.events)
        self.predictions = PredictionEngine(self.client, self.cache, self.sessions, self.events)

        self.refresh_user_context()

    @classmethod
    def from_config(
        cls,
        profile_name: Optional[str] = None,
        base_url: Optional[str] = None,
        **kwargs,
    ) -> Runtime:
        """Build a runtime from the resolved profile and global config.

        Raises:
            ConfigError: If no profile can be resolved.
        """
        config, profile = resolve_config(cli_profile=profile_name, cli_base_url=base_url)
        if profile is None:
            raise ConfigError("No profile configured. Run 'vopex init' to create one.")
        key = load_or_create_key(key_path(get_data_dir()))
        store = KeyValueStore(get_store_dir(profile.name), cipher=Cipher(key))
        return cls(profile, config, store, **kwargs)

    def refresh_user_context(self) -> None:
        """Point feature-flag evaluation at the signed-in user, if any."""
        user = self.sessions.user or {}
        roles = user.get("roles")
        if roles is None and user.get("role"):
            roles = [user["role"]]
        self.flags.set_user_context(
            UserContext(
                id=str(user["id"]) if user.get("id") is not None else None,
                roles=roles,
                email=user.get("email"),
            )
        )

    def forget_user_data(self) -> None:
        """Drop cached API responses and predictions.

        Their keys carry no user identity, so they must not outlive the
        session that fetched them.
        """
        for namespace in USER_SCOPED_NAMESPACES:
            self.cache.clear(namespace)

    def close(self) -> None:
        self.interceptors.cleanup()
        self.client.close()
        self.store.close()

    def __enter__(self) -> Runtime:
        self.client.open()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _on_redirect(self, route: str) -> None:
        self.redirect_target = route
        self.forget_user_data()
        logger.info("Session ended; login required at %s", route)
        if self._redirect is not None:
            self._redirect(route)
