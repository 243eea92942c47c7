"""Tests for the namespaced key/value store."""

from __future__ import annotations

from pathlib import Path

import pytest

from vopex.models import StorageOptions
from vopex.security import Cipher
from vopex.storage import KeyValueStore, StorageChange, format_key


class TestFormatKey:
    def test_default_namespace(self) -> None:
        assert format_key("user") == "default:user"

    def test_custom_namespace(self) -> None:
        assert format_key("token", "auth") == "auth:token"


class TestPersistentArea:
    def test_set_and_get(self, store: KeyValueStore) -> None:
        store.set_item("user", {"name": "Ada"})
        assert store.get_item("user") == {"name": "Ada"}

    def test_missing_returns_none(self, store: KeyValueStore) -> None:
        assert store.get_item("nope") is None

    def test_namespaces_are_isolated(self, store: KeyValueStore) -> None:
        store.set_item("k", 1, StorageOptions(namespace="a"))
        store.set_item("k", 2, StorageOptions(namespace="b"))
        assert store.get_item("k", "a") == 1
        assert store.get_item("k", "b") == 2
        assert store.get_item("k") is None

    def test_encrypted_value_is_not_plaintext_on_disk(self, store: KeyValueStore) -> None:
        store.set_item("secret", "hunter2", StorageOptions(encrypted=True))
        raw = store._cache.get("default:secret")
        assert "hunter2" not in raw
        assert store.get_item("secret") == "hunter2"

    def test_encrypted_write_refused_without_cipher(self, tmp_path: Path) -> None:
        with KeyValueStore(tmp_path / "plain") as kv:
            kv.set_item("secret", "x", StorageOptions(encrypted=True))
            assert kv.get_item("secret") is None

    def test_unreadable_with_other_key_is_missing(self, tmp_path: Path) -> None:
        directory = tmp_path / "shared"
        with KeyValueStore(directory, cipher=Cipher(Cipher.generate_key())) as kv:
            kv.set_item("secret", "x", StorageOptions(encrypted=True))
        with KeyValueStore(directory, cipher=Cipher(Cipher.generate_key())) as kv:
            assert kv.get_item("secret") is None

    def test_expired_item_is_removed(self, store: KeyValueStore, clock) -> None:
        store.set_item("otp", "123456", StorageOptions(expires=60))
        clock.advance(59)
        assert store.get_item("otp") == "123456"
        clock.advance(2)
        assert store.get_item("otp") is None
        assert "default:otp" not in store.keys()

    def test_zero_expiry_never_expires(self, store: KeyValueStore, clock) -> None:
        store.set_item("k", "v")
        clock.advance(10 ** 9)
        assert store.get_item("k") == "v"

    def test_unserialisable_value_is_not_stored(self, store: KeyValueStore) -> None:
        store.set_item("bad", object())
        assert store.get_item("bad") is None

    def test_persists_across_instances(self, tmp_path: Path, cipher: Cipher) -> None:
        with KeyValueStore(tmp_path / "s", cipher=cipher) as kv:
            kv.set_item("k", [1, 2], StorageOptions(encrypted=True))
        with KeyValueStore(tmp_path / "s", cipher=cipher) as kv:
            assert kv.get_item("k") == [1, 2]

    def test_remove_item(self, store: KeyValueStore) -> None:
        store.set_item("k", "v")
        store.remove_item("k")
        assert store.get_item("k") is None

    def test_clear_namespace_only(self, store: KeyValueStore) -> None:
        store.set_item("a", 1)
        store.set_item("b", 2, StorageOptions(namespace="auth"))
        store.clear()
        assert store.keys() == ["auth:b"]

    def test_clear_all(self, store: KeyValueStore) -> None:
        store.set_item("a", 1)
        store.set_item("b", 2, StorageOptions(namespace="auth"))
        store.clear(None)
        assert store.keys() == []

    def test_keys_sorted_and_filtered(self, store: KeyValueStore) -> None:
        store.set_item("z", 1)
        store.set_item("a", 1)
        store.set_item("x", 1, StorageOptions(namespace="other"))
        assert store.keys("default") == ["default:a", "default:z"]


class TestObservers:
    def test_observer_sees_write_and_removal(self, store: KeyValueStore) -> None:
        changes: list[StorageChange] = []
        store.observe(changes.append)

        store.set_item("k", "v1")
        store.set_item("k", "v2")
        store.remove_item("k")

        assert [(c.key, c.old_value, c.new_value) for c in changes] == [
            ("default:k", None, "v1"),
            ("default:k", "v1", "v2"),
            ("default:k", "v2", None),
        ]

    def test_removing_missing_key_is_silent(self, store: KeyValueStore) -> None:
        changes: list[StorageChange] = []
        store.observe(changes.append)
        store.remove_item("ghost")
        assert changes == []

    def test_unsubscribe(self, store: KeyValueStore) -> None:
        changes: list[StorageChange] = []
        unsubscribe = store.observe(changes.append)
        unsubscribe()
        store.set_item("k", "v")
        assert changes == []

    def test_failing_observer_does_not_break_writes(self, store: KeyValueStore) -> None:
        def boom(change: StorageChange) -> None:
            raise RuntimeError("observer failed")

        store.observe(boom)
        store.set_item("k", "v")
        assert store.get_item("k") == "v"


class TestSessionArea:
    def test_round_trip(self, store: KeyValueStore) -> None:
        store.set_session_item("draft", {"subject": "Hi"})
        assert store.get_session_item("draft") == {"subject": "Hi"}

    def test_encrypted(self, store: KeyValueStore) -> None:
        store.set_session_item("t", "abc", StorageOptions(encrypted=True))
        assert "abc" not in store._session["default:t"]
        assert store.get_session_item("t") == "abc"

    def test_not_persisted(self, tmp_path: Path, cipher: Cipher) -> None:
        with KeyValueStore(tmp_path / "s", cipher=cipher) as kv:
            kv.set_session_item("k", "v")
        with KeyValueStore(tmp_path / "s", cipher=cipher) as kv:
            assert kv.get_session_item("k") is None

    def test_remove(self, store: KeyValueStore) -> None:
        store.set_session_item("k", "v")
        store.remove_session_item("k")
        assert store.get_session_item("k") is None


class TestUsage:
    def test_reports_bytes(self, store: KeyValueStore) -> None:
        store.set_item("k", "v" * 1000)
        usage = store.usage()
        assert usage["total"] > 0
        assert usage["used"] >= 0
        assert usage["remaining"] == usage["total"] - usage["used"]
