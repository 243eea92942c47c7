"""Canonical Pydantic models shared across all vopex modules.

The models fall into three groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`RequestConfig`, :class:`CacheConfig`, :class:`StorageConfig`,
    :class:`InterceptorsConfig`, :class:`OutputConfig`, :class:`GlobalConfig`,
    and :class:`Profile`.

**Cache and storage records** -- the envelopes written by the cache and the
key/value store:
    :class:`CacheEntry`, :class:`StorageOptions`, :class:`StoredItem`.

**Domain models** -- the few shapes the client itself needs to understand:
    :class:`Session`, :class:`UserContext`, :class:`FeatureFlagStatus`,
    :class:`FeatureFlag`.

All timestamps are epoch seconds and all durations are seconds.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Configuration ---


class RequestConfig(BaseModel):
    """HTTP settings applied to every API call in a profile."""

    timeout: float = Field(default=10.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    headers: dict[str, str] = Field(
        default_factory=dict, description="Extra default headers for every request"
    )


class CacheConfig(BaseModel):
    """Settings for :class:`~vopex.cache.Cache` and the response cache."""

    default_ttl: float = Field(default=600, description="Default entry TTL in seconds")
    max_entries: int = Field(default=200, description="Entries kept in memory before eviction")
    persistent: bool = Field(
        default=True, description="Mirror entries into the persistent store"
    )
    responses: bool = Field(default=False, description="Cache successful GET responses")
    response_ttl: float = Field(default=300, description="TTL for cached GET responses")


class StorageConfig(BaseModel):
    """Settings for :class:`~vopex.storage.KeyValueStore`."""

    namespace: str = Field(default="default", description="Default key namespace")
    encrypt_session: bool = Field(
        default=True, description="Encrypt the stored auth session"
    )


class InterceptorsConfig(BaseModel):
    """Explicit interceptor allow/deny lists stored in :class:`GlobalConfig`."""

    enabled: list[str] = Field(default_factory=list)
    disabled: list[str] = Field(default_factory=list)


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/vopex/config.json``.

    Fields here have the lowest precedence and can be overridden by project
    config, environment variables, or CLI flags. See
    :func:`~vopex.config.resolve_config` for the full precedence chain.
    """

    default_profile: Optional[str] = None
    auto_select_single_profile: bool = True
    environment: str = Field(
        default="production",
        description="Deployment environment used by feature-flag conditions",
    )
    output: OutputConfig = Field(default_factory=OutputConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    interceptors: InterceptorsConfig = Field(default_factory=InterceptorsConfig)


class Profile(BaseModel):
    """Per-backend profile stored as JSON under the ``profiles/`` config directory.

    Each profile names one CRM deployment. Extra fields are preserved in
    ``model_extra`` so interceptors can carry their own settings.
    """

    model_config = ConfigDict(extra="allow")

    name: str
    base_url: str = Field(description="API root, e.g. https://crm.example.com/api")
    login_route: str = Field(
        default="/login", description="Where to send the user when the session expires"
    )
    request: RequestConfig = Field(default_factory=RequestConfig)


# --- Cache and storage records ---


class CacheEntry(BaseModel):
    """A single cached value with its creation time and lifetime.

    The entry is fresh while ``now - timestamp < ttl``.
    """

    value: Any = None
    timestamp: float
    ttl: float

    def is_fresh(self, now: float) -> bool:
        return now - self.timestamp < self.ttl


class StorageOptions(BaseModel):
    """Controls how :meth:`~vopex.storage.KeyValueStore.set_item` writes a value."""

    encrypted: bool = False
    expires: float = Field(default=0, description="Lifetime in seconds; 0 never expires")
    namespace: str = "default"


class StoredItem(BaseModel):
    """The envelope serialised into the key/value store.

    ``expires`` is an absolute epoch time, or ``0`` for never.
    """

    value: Any = None
    timestamp: float
    expires: float = 0
    namespace: str = "default"

    def is_expired(self, now: float) -> bool:
        return self.expires > 0 and now > self.expires


# --- Domain ---


class Session(BaseModel):
    """The authenticated session persisted by :class:`~vopex.auth.SessionStore`."""

    token: str
    user: Optional[dict[str, Any]] = None


class UserContext(BaseModel):
    """Who a feature flag is being evaluated for."""

    id: Optional[str] = None
    roles: Optional[list[str]] = None
    email: Optional[str] = None


class FeatureFlagStatus(str, enum.Enum):
    """Rollout state of a :class:`FeatureFlag`."""

    ENABLED = "ENABLED"
    DISABLED = "DISABLED"
    PARTIAL = "PARTIAL"


class FeatureFlag(BaseModel):
    """A server-defined feature flag.

    ``PARTIAL`` flags are narrowed by ``rollout_percentage``,
    ``enabled_for_roles`` and ``conditions``, in that order.
    """

    model_config = ConfigDict(populate_by_name=True)

    key: str
    status: FeatureFlagStatus
    rollout_percentage: Optional[float] = Field(default=None, alias="rolloutPercentage")
    enabled_for_roles: Optional[list[str]] = Field(default=None, alias="enabledForRoles")
    conditions: Optional[dict[str, Any]] = None
