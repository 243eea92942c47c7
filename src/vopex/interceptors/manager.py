"""Interceptor discovery and lifecycle.

:class:`InterceptorManager` loads interceptors registered under the
``vopex.interceptors`` entry-point group, applies the enabled/disabled lists
from :class:`~vopex.models.InterceptorsConfig`, and hands out a cached
:class:`~vopex.interceptors.chain.InterceptorChain`.

Third-party packages register interceptors in their ``pyproject.toml``::

    [project.entry-points."vopex.interceptors"]
    tenant = "my_package.interceptors:TenantHeader"
"""

from __future__ import annotations

import importlib.metadata
import logging
from typing import Optional

from vopex.exceptions import InterceptorError
from vopex.interceptors.base import Interceptor
from vopex.interceptors.chain import InterceptorChain
from vopex.models import GlobalConfig

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "vopex.interceptors"


class InterceptorManager:
    """Discovers, registers and cleans up interceptors.

    When ``interceptors.enabled`` is non-empty only those names load;
    otherwise everything discovered loads except ``interceptors.disabled``.
    Interceptors added with :meth:`register` bypass the lists.

    Example::

        manager = InterceptorManager()
        manager.register(BearerTokenInterceptor(sessions), config)
        manager.discover(config)
        client = ApiClient(profile, chain=manager.get_chain())
    """

    def __init__(self) -> None:
        self._interceptors: dict[str, Interceptor] = {}
        self._chain: Optional[InterceptorChain] = None

    def discover(self, config: GlobalConfig) -> list[str]:
        """Load entry-point interceptors.

        Returns:
            Names of the interceptors that loaded. Failures are logged as
            warnings and skipped.
        """
        loaded: list[str] = []
        enabled = set(config.interceptors.enabled)
        disabled = set(config.interceptors.disabled)

        for ep in importlib.metadata.entry_points(group=ENTRY_POINT_GROUP):
            if enabled and ep.name not in enabled:
                logger.debug("Interceptor '%s' not in enabled list, skipping", ep.name)
                continue
            if ep.name in disabled:
                logger.debug("Interceptor '%s' is disabled, skipping", ep.name)
                continue
            if ep.name in self._interceptors:
                continue
            try:
                interceptor_cls = ep.load()
                self.register(interceptor_cls(), config, name=ep.name)
                loaded.append(ep.name)
            except Exception as exc:
                logger.warning("Failed to load interceptor '%s': %s", ep.name, exc)
        return loaded

    def register(
        self,
        interceptor: Interceptor,
        config: GlobalConfig,
        name: Optional[str] = None,
    ) -> None:
        """Initialise *interceptor* and append it to the chain.

        Raises:
            InterceptorError: If the name is already registered.
        """
        name = name or interceptor.name
        if name in self._interceptors:
            raise InterceptorError(f"Interceptor '{name}' is already registered")
        interceptor.on_init(config)
        self._interceptors[name] = interceptor
        self._chain = None
        logger.debug("Registered interceptor '%s' v%s", name, interceptor.version)

    def get(self, name: str) -> Interceptor:
        try:
            return self._interceptors[name]
        except KeyError:
            raise InterceptorError(f"Interceptor '{name}' is not registered") from None

    def list_interceptors(self) -> list[dict[str, str]]:
        return [
            {"name": name, "version": i.version, "description": i.description}
            for name, i in self._interceptors.items()
        ]

    def get_chain(self) -> InterceptorChain:
        """Return the chain of registered interceptors, rebuilt after changes."""
        if self._chain is None:
            self._chain = InterceptorChain(self._interceptors.values())
        return self._chain

    def cleanup(self) -> None:
        """Call ``cleanup`` on every interceptor, then forget them all."""
        for name, interceptor in self._interceptors.items():
            try:
                interceptor.cleanup()
            except Exception as exc:
                logger.warning("Error cleaning up interceptor '%s': %s", name, exc)
        self._interceptors.clear()
        self._chain = None
