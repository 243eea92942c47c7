"""Symmetric encryption and password helpers.

:class:`Cipher` wraps :class:`cryptography.fernet.Fernet` and is what the
key/value store uses for ``encrypted=True`` items. The key lives in a
``0o600`` file under the data directory (see :func:`load_or_create_key`);
if that file is lost, previously encrypted items simply stop decrypting and
are treated as missing.
"""

from __future__ import annotations

import hmac
import secrets
from pathlib import Path
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from vopex.config import atomic_write
from vopex.exceptions import DecryptionError

PBKDF2_ITERATIONS = 100_000
PBKDF2_KEY_LENGTH = 64


class Cipher:
    """Fernet encryption over UTF-8 strings.

    Args:
        key: A urlsafe base64-encoded 32-byte key, as produced by
            :meth:`generate_key`.

    Example::

        cipher = Cipher(Cipher.generate_key())
        token = cipher.encrypt('{"token": "abc"}')
        assert cipher.decrypt(token) == '{"token": "abc"}'
    """

    def __init__(self, key: bytes | str) -> None:
        if isinstance(key, str):
            key = key.encode("ascii")
        self._fernet = Fernet(key)

    @staticmethod
    def generate_key() -> bytes:
        return Fernet.generate_key()

    def encrypt(self, data: str) -> str:
        return self._fernet.encrypt(data.encode("utf-8")).decode("ascii")

    def decrypt(self, token: str) -> str:
        """Decrypt *token*.

        Raises:
            DecryptionError: If the token is malformed or was produced with
                a different key.
        """
        try:
            return self._fernet.decrypt(token.encode("ascii")).decode("utf-8")
        except (InvalidToken, UnicodeError, ValueError) as exc:
            raise DecryptionError("Stored value could not be decrypted") from exc


def load_or_create_key(path: Path) -> bytes:
    """Return the Fernet key stored at *path*, creating it on first use.

    New keys are written atomically with ``0o600`` permissions.
    """
    if path.is_file():
        return path.read_text(encoding="ascii").strip().encode("ascii")
    key = Cipher.generate_key()
    atomic_write(path, key.decode("ascii") + "\n", mode=0o600)
    return key


def generate_secure_token(length: int = 32) -> str:
    """Return *length* random bytes as a hex string."""
    return secrets.token_hex(length)


def hash_password(password: str, salt: Optional[str] = None) -> tuple[str, str]:
    """Hash *password* with PBKDF2-HMAC-SHA512.

    Returns:
        ``(hex_hash, salt)``. A 16-byte hex salt is generated when none is
        given.
    """
    salt = salt or generate_secure_token(16)
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA512(),
        length=PBKDF2_KEY_LENGTH,
        salt=salt.encode("utf-8"),
        iterations=PBKDF2_ITERATIONS,
    )
    return kdf.derive(password.encode("utf-8")).hex(), salt


def verify_password(password: str, stored_hash: str, salt: str) -> bool:
    candidate, _ = hash_password(password, salt)
    return hmac.compare_digest(candidate, stored_hash)


def key_path(data_dir: Path) -> Path:
    """Location of the store encryption key inside *data_dir*."""
    return data_dir / "storage.key"

