"""Encrypt, decrypt and mask the secret-bearing fields of provider configs."""
import structlog

from shared.security.secrets import SecretDecryptionError, decrypt_secret, encrypt_secret, mask_secret
from .types import SECRET_FIELDS

logger = structlog.get_logger(__name__)

MASK = mask_secret("x")


def _transform(config, fn):
    fields = SECRET_FIELDS[config.provider]
    return config.model_copy(update={name: fn(getattr(config, name)) for name in fields})


def encrypt_provider_secrets(config, previous=None):
    """Encrypts plain secrets for storage.

    A masked value means unchanged: the previous ciphertext for the same
    provider id and kind is kept, otherwise the field is cleared.
    """
    same = previous is not None and previous.id == config.id and previous.provider == config.provider
    updates = {}
    for name in SECRET_FIELDS[config.provider]:
        value = getattr(config, name)
        if value == MASK:
            updates[name] = getattr(previous, name) if same else None
        elif value:
            updates[name] = encrypt_secret(value)
    return config.model_copy(update=updates)


def mask_provider_secrets(config):
    return _transform(config, mask_secret)


def decrypt_provider_secrets(config):
    """Returns a decrypted copy, or None when any secret cannot be decrypted.

    A None result marks the provider unusable for this send.
    """
    try:
        return _transform(config, decrypt_secret)
    except SecretDecryptionError as e:
        logger.critical(
            "Provider secret decryption failed; re-enter the credentials",
            provider=config.provider,
            provider_id=config.id,
            error=str(e),
        )
        return None
