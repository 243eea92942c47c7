"""Server-defined feature flags with local evaluation.

Flags are fetched from ``/feature-flags`` and cached, encrypted, in the
key/value store so that a failed sync can fall back to the last known set.
Evaluation happens locally against a :class:`~vopex.models.UserContext`.

``PARTIAL`` flags are narrowed in three steps:

1. ``rollout_percentage``: the user id is hashed to a stable bucket in
   ``0..99``; users whose bucket is above the percentage are excluded.
2. ``enabled_for_roles``: the user needs at least one listed role.
3. ``conditions``: ``email_domain``, ``user_ids`` and ``environment``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, TypeVar

from vopex.client import ApiClient
from vopex.exceptions import VopexError
from vopex.models import FeatureFlag, FeatureFlagStatus, StorageOptions, UserContext
from vopex.storage import KeyValueStore
from vopex.tasks import PeriodicTask

logger = logging.getLogger(__name__)

STORAGE_KEY = "feature-flags"
FLAG_WATCH_INTERVAL = 5.0

T = TypeVar("T")


def string_hash(value: str) -> int:
    """32-bit signed ``h = 31 * h + unit`` over the UTF-16 code units of *value*.

    Matches the bucketing used by the web client, so a user lands in the
    same rollout bucket everywhere.
    """
    h = 0
    units = value.encode("utf-16-le")
    for i in range(0, len(units), 2):
        unit = units[i] | (units[i + 1] << 8)
        h = (h * 31 + unit) & 0xFFFFFFFF
    return h - 0x100000000 if h & 0x80000000 else h


def rollout_bucket(user_id: Optional[str]) -> int:
    """Stable bucket in ``0..99`` for *user_id*; ``0`` without an id."""
    if not user_id:
        return 0
    return abs(string_hash(user_id)) % 100


class FeatureFlags:
    """Holds the current flag set and evaluates it.

    Args:
        client: Used by :meth:`sync`.
        store: Where the last synced flag set is cached.
        environment: Compared against the ``environment`` condition.

    Example::

        flags = FeatureFlags(client, store, environment="staging")
        flags.sync()
        flags.set_user_context(UserContext(id="u1", roles=["admin"]))
        if flags.is_enabled("new_dashboard"):
            ...
    """

    def __init__(
        self,
        client: ApiClient,
        store: KeyValueStore,
        environment: str = "production",
    ) -> None:
        self._client = client
        self._store = store
        self._environment = environment
        self._flags: dict[str, FeatureFlag] = {}
        self._context = UserContext()

    @property
    def flags(self) -> dict[str, FeatureFlag]:
        return dict(self._flags)

    def set_user_context(self, context: UserContext) -> None:
        self._context = context

    def sync(self) -> int:
        """Fetch ``/feature-flags`` and cache the result.

        On failure the cached set (if any) is loaded instead.

        Returns:
            The number of flags now known.
        """
        try:
            payload = self._client.get("/feature-flags")
            fetched = [FeatureFlag.model_validate(item) for item in payload or []]
        except (VopexError, ValueError, TypeError) as exc:
            logger.warning("Feature flag sync failed: %s", exc)
            self._load_cached()
            return len(self._flags)

        for flag in fetched:
            self._flags[flag.key] = flag
        self._store.set_item(
            STORAGE_KEY,
            {key: flag.model_dump(mode="json", by_alias=True) for key, flag in self._flags.items()},
            StorageOptions(encrypted=True),
        )
        return len(self._flags)

    def is_enabled(self, key: str, context: Optional[UserContext] = None) -> bool:
        flag = self._flags.get(key)
        if flag is None:
            logger.warning("Feature flag %s not found", key)
            return False

        context = context or self._context

        if flag.status == FeatureFlagStatus.DISABLED:
            return False
        if flag.status == FeatureFlagStatus.ENABLED:
            return True

        if flag.rollout_percentage:
            if rollout_bucket(context.id) > flag.rollout_percentage:
                return False

        if flag.enabled_for_roles is not None and context.roles is not None:
            if not any(role in context.roles for role in flag.enabled_for_roles):
                return False

        if flag.conditions is not None:
            return self._evaluate_conditions(flag.conditions, context)
        return True

    def details(self, key: str) -> Optional[FeatureFlag]:
        return self._flags.get(key)

    def register(self, flag: FeatureFlag) -> None:
        self._flags[flag.key] = flag

    def experimental(self, key: str, impl: Callable[[], T], fallback: Callable[[], T]) -> T:
        """Run *impl* when *key* is enabled for the current user, else *fallback*."""
        return impl() if self.is_enabled(key) else fallback()

    def watch(
        self,
        key: str,
        callback: Callable[[bool], None],
        interval: float = FLAG_WATCH_INTERVAL,
    ) -> PeriodicTask:
        """Return a task that calls *callback* whenever *key* flips.

        The state is first read when the task is created, so the callback
        only sees changes. Each run re-evaluates the flag against the flags
        and user context currently held; it does not fetch. Run the task in
        a :class:`~vopex.tasks.TaskRunner` next to the ``flag-sync`` job and
        stop the runner to stop watching.
        """
        last = [self._state(key)]

        def check() -> None:
            current = self._state(key)
            if current != last[0]:
                last[0] = current
                logger.info("Feature flag %s is now %s", key, "on" if current else "off")
                callback(current)

        return PeriodicTask(f"flag-watch-{key}", interval, check)

    def _state(self, key: str) -> bool:
        return key in self._flags and self.is_enabled(key)

    def _load_cached(self) -> None:
        cached = self._store.get_item(STORAGE_KEY)
        if not isinstance(cached, dict):
            return
        try:
            self._flags = {key: FeatureFlag.model_validate(value) for key, value in cached.items()}
        except ValueError as exc:
            logger.warning("Ignoring unreadable cached feature flags: %s", exc)

    def _evaluate_conditions(self, conditions: dict[str, Any], context: UserContext) -> bool:
        for name, expected in conditions.items():
            if name == "email_domain":
                if context.email:
                    _, _, domain = context.email.partition("@")
                    if not domain or domain not in expected:
                        return False
            elif name == "user_ids":
                if context.id and context.id not in expected:
                    return False
            elif name == "environment":
                if expected != self._environment:
                    return False
            else:
                logger.warning("Unsupported feature flag condition: %s", name)
        return True
