"""Tests for feature flag sync and evaluation."""

from __future__ import annotations

import pytest

from vopex.client import ApiClient
from vopex.flags import STORAGE_KEY, FeatureFlags, rollout_bucket, string_hash
from vopex.models import FeatureFlag, FeatureFlagStatus, UserContext
from vopex.storage import KeyValueStore

# "polygenelubricants" hashes to -2**31, i.e. bucket 48.
BUCKET_48_USER = "polygenelubricants"


@pytest.fixture
def flags(client: ApiClient, store: KeyValueStore) -> FeatureFlags:
    return FeatureFlags(client, store, environment="staging")


def _partial(key: str = "f", **fields) -> FeatureFlag:
    return FeatureFlag(key=key, status=FeatureFlagStatus.PARTIAL, **fields)


class TestHashing:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("", 0),
            ("a", 97),
            ("abc", 96354),
            (BUCKET_48_USER, -(2 ** 31)),
            ("\U0001F600", 0xD83D * 31 + 0xDE00),
        ],
    )
    def test_string_hash(self, value: str, expected: int) -> None:
        assert string_hash(value) == expected

    def test_bucket(self) -> None:
        assert rollout_bucket(BUCKET_48_USER) == 48
        assert rollout_bucket(None) == 0
        assert rollout_bucket("") == 0
        assert 0 <= rollout_bucket("user-123") < 100


class TestEvaluation:
    def test_unknown_flag_is_off(self, flags: FeatureFlags) -> None:
        assert not flags.is_enabled("ghost")

    def test_enabled_and_disabled(self, flags: FeatureFlags) -> None:
        flags.register(FeatureFlag(key="on", status=FeatureFlagStatus.ENABLED))
        flags.register(FeatureFlag(key="off", status=FeatureFlagStatus.DISABLED))
        assert flags.is_enabled("on")
        assert not flags.is_enabled("off")

    @pytest.mark.parametrize(("percentage", "expected"), [(47, False), (48, True), (90, True)])
    def test_rollout(self, flags: FeatureFlags, percentage: float, expected: bool) -> None:
        flags.register(_partial(rollout_percentage=percentage))
        assert flags.is_enabled("f", UserContext(id=BUCKET_48_USER)) is expected

    def test_zero_rollout_is_ignored(self, flags: FeatureFlags) -> None:
        flags.register(_partial(rollout_percentage=0))
        assert flags.is_enabled("f", UserContext(id=BUCKET_48_USER))

    def test_roles(self, flags: FeatureFlags) -> None:
        flags.register(_partial(enabled_for_roles=["admin", "manager"]))
        assert flags.is_enabled("f", UserContext(roles=["manager"]))
        assert not flags.is_enabled("f", UserContext(roles=["sales"]))
        assert flags.is_enabled("f", UserContext(roles=None))

    def test_email_domain(self, flags: FeatureFlags) -> None:
        flags.register(_partial(conditions={"email_domain": ["example.com"]}))
        assert flags.is_enabled("f", UserContext(email="ada@example.com"))
        assert not flags.is_enabled("f", UserContext(email="ada@other.org"))
        assert flags.is_enabled("f", UserContext())

    def test_user_ids(self, flags: FeatureFlags) -> None:
        flags.register(_partial(conditions={"user_ids": ["u1"]}))
        assert flags.is_enabled("f", UserContext(id="u1"))
        assert not flags.is_enabled("f", UserContext(id="u2"))

    def test_environment(self, flags: FeatureFlags) -> None:
        flags.register(_partial("stg", conditions={"environment": "staging"}))
        flags.register(_partial("prod", conditions={"environment": "production"}))
        assert flags.is_enabled("stg")
        assert not flags.is_enabled("prod")

    def test_unknown_condition_is_ignored(self, flags: FeatureFlags) -> None:
        flags.register(_partial(conditions={"moon_phase": "full"}))
        assert flags.is_enabled("f")

    def test_stored_user_context_is_default(self, flags: FeatureFlags) -> None:
        flags.register(_partial(enabled_for_roles=["admin"]))
        flags.set_user_context(UserContext(roles=["sales"]))
        assert not flags.is_enabled("f")
        assert flags.is_enabled("f", UserContext(roles=["admin"]))

    def test_experimental(self, flags: FeatureFlags) -> None:
        flags.register(FeatureFlag(key="new", status=FeatureFlagStatus.ENABLED))
        assert flags.experimental("new", lambda: "new", lambda: "old") == "new"
        assert flags.experimental("missing", lambda: "new", lambda: "old") == "old"


class TestSync:
    PAYLOAD = [
        {"key": "dashboard", "status": "PARTIAL", "rolloutPercentage": 50, "enabledForRoles": ["admin"]},
        {"key": "export", "status": "ENABLED"},
    ]

    def test_fetches_and_caches(self, flags: FeatureFlags, api, store: KeyValueStore) -> None:
        api.add("GET", "/feature-flags", self.PAYLOAD)
        assert flags.sync() == 2
        assert flags.details("dashboard").rollout_percentage == 50
        assert flags.details("dashboard").enabled_for_roles == ["admin"]
        cached = store.get_item(STORAGE_KEY)
        assert cached["dashboard"]["rolloutPercentage"] == 50
        assert "dashboard" not in store._cache.get(f"default:{STORAGE_KEY}")

    def test_falls_back_to_cache(self, client: ApiClient, api, store: KeyValueStore) -> None:
        api.add("GET", "/feature-flags", self.PAYLOAD)
        FeatureFlags(client, store).sync()

        api.add("GET", "/feature-flags", {"message": "down"}, status=500)
        fresh = FeatureFlags(client, store)
        assert fresh.sync() == 2
        assert fresh.is_enabled("export")

    def test_invalid_payload_falls_back(self, flags: FeatureFlags, api) -> None:
        api.add("GET", "/feature-flags", [{"key": "broken"}])
        assert flags.sync() == 0

    def test_flags_property_is_a_copy(self, flags: FeatureFlags) -> None:
        flags.register(FeatureFlag(key="x", status=FeatureFlagStatus.ENABLED))
        flags.flags.clear()
        assert flags.details("x") is not None


class TestWatch:
    def test_fires_only_on_change(self, flags: FeatureFlags) -> None:
        flags.register(FeatureFlag(key="beta", status=FeatureFlagStatus.DISABLED))
        seen: list[bool] = []
        task = flags.watch("beta", seen.append, interval=0.1)

        task.run_once()
        flags.register(FeatureFlag(key="beta", status=FeatureFlagStatus.ENABLED))
        task.run_once()
        task.run_once()
        flags.register(FeatureFlag(key="beta", status=FeatureFlagStatus.DISABLED))
        task.run_once()

        assert seen == [True, False]
        assert task.interval == 0.1
        assert task.name == "flag-watch-beta"

    def test_follows_user_context(self, flags: FeatureFlags) -> None:
        flags.register(_partial("admin_tools", enabled_for_roles=["admin"]))
        flags.set_user_context(UserContext(id="u1", roles=["viewer"]))
        seen: list[bool] = []
        task = flags.watch("admin_tools", seen.append)

        flags.set_user_context(UserContext(id="u1", roles=["admin"]))
        task.run_once()
        assert seen == [True]

    def test_unknown_flag_appearing_after_sync(self, flags: FeatureFlags, api, caplog) -> None:
        seen: list[bool] = []
        task = flags.watch("export", seen.append)
        task.run_once()
        assert seen == []
        assert "not found" not in caplog.text

        api.add("GET", "/feature-flags", [{"key": "export", "status": "ENABLED"}])
        flags.sync()
        task.run_once()
        assert seen == [True]
