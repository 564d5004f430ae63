from .jwt_handler import issue_staff_token, verify_access_token
from .api_key import verify_api_key
from .dependencies import get_current_user, verify_internal_api_key
from .rate_limiter import limiter, user_id_or_ip
from .secrets import SecretDecryptionError, decrypt_secret, encrypt_secret, mask_secret

__all__ = [
    "issue_staff_token",
    "verify_access_token",
    "verify_api_key",
    "get_current_user",
    "verify_internal_api_key",
    "limiter",
    "user_id_or_ip",
    "SecretDecryptionError",
    "decrypt_secret",
    "encrypt_secret",
    "mask_secret",
]
