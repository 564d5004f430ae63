"""
Encryption at rest for provider credentials (SMTP passwords, API keys, tokens).

Values are stored as compact JWE tokens (direct key agreement, A256GCM) keyed by
a SHA-256 digest of ENCRYPTION_KEY. Values that are not JWE tokens are treated
as plain text so that credentials saved before a key was configured keep working.
"""
import hashlib
import os

from jose import jwe
from jose.exceptions import JWEError

ENCRYPTION_KEY = os.getenv("ENCRYPTION_KEY", "")


class SecretDecryptionError(Exception):
    """Raised when a value looks encrypted but cannot be decrypted."""


def _key(raw_key: str | None = None) -> bytes:
    return hashlib.sha256((raw_key if raw_key is not None else ENCRYPTION_KEY).encode("utf-8")).digest()


def looks_encrypted(value: str | None) -> bool:
    return bool(value) and value.count(".") == 4


def encrypt_secret(value: str, raw_key: str | None = None) -> str:
    if not value:
        return value
    if not (raw_key if raw_key is not None else ENCRYPTION_KEY):
        return value
    token = jwe.encrypt(value.encode("utf-8"), _key(raw_key), algorithm="dir", encryption="A256GCM")
    return token.decode("ascii") if isinstance(token, bytes) else token


def decrypt_secret(value: str | None, raw_key: str | None = None) -> str | None:
    if not looks_encrypted(value):
        return value
    if not (raw_key if raw_key is not None else ENCRYPTION_KEY):
        raise SecretDecryptionError("ENCRYPTION_KEY is not configured")
    try:
        return jwe.decrypt(value.encode("ascii"), _key(raw_key)).decode("utf-8")
    except (JWEError, ValueError) as e:
        raise SecretDecryptionError(str(e)) from e


def mask_secret(value: str | None) -> str | None:
    return "ENCRYPTED" if value else value
