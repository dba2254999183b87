import pytest

from shared.security.EncryptionService import EncryptionService, derive_key


def test_round_trip_uses_fresh_iv(encryption):
    first = encryption.encrypt("s3cret-token")
    second = encryption.encrypt("s3cret-token")

    assert first != second
    assert encryption.decrypt(first) == "s3cret-token"
    iv_hex, cipher_hex = first.split(":")
    assert len(iv_hex) == 32
    assert len(cipher_hex) % 32 == 0


def test_json_values(encryption):
    value = {"access_token": "a", "refresh_token": "r", "expiry": 3600}
    assert encryption.decrypt_json(encryption.encrypt_json(value)) == value


def test_key_is_padded_and_truncated():
    assert derive_key("abc") == b"abc" + b"0" * 29
    assert derive_key("x" * 40) == b"x" * 32


def test_same_secret_decrypts_across_instances():
    encrypted = EncryptionService(secret="shared").encrypt("value")
    assert EncryptionService(secret="shared").decrypt(encrypted) == "value"


def test_secret_from_config(helper_config, encryption):
    assert EncryptionService(helper_config=helper_config).decrypt(encryption.encrypt("x")) == "x"


@pytest.mark.parametrize("value", ["no-separator", "zz:zz"])
def test_malformed_values_are_rejected(encryption, value):
    with pytest.raises(ValueError):
        encryption.decrypt(value)


def test_empty_secret_is_rejected():
    with pytest.raises(ValueError):
        EncryptionService(secret="")
