import pytest

from shared.security.secrets import SecretDecryptionError, decrypt_secret, encrypt_secret, looks_encrypted


class TestSecrets:
    def test_round_trip(self):
        token = encrypt_secret("smtp-password")
        assert looks_encrypted(token)
        assert decrypt_secret(token) == "smtp-password"

    def test_plain_text_passes_through(self):
        assert decrypt_secret("legacy-plain-value") == "legacy-plain-value"
        assert decrypt_secret(None) is None

    def test_without_key_values_stay_plain(self):
        assert encrypt_secret("value", raw_key="") == "value"

    def test_wrong_key_raises(self):
        token = encrypt_secret("api-key", raw_key="key-one")
        with pytest.raises(SecretDecryptionError):
            decrypt_secret(token, raw_key="key-two")
