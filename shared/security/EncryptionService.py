"""
Credential encryption at rest.

AES-256-CBC with PKCS7 padding. The key is the configured secret right-padded
with "0" to 32 characters and truncated to 32; each value gets a fresh random
16-byte IV. Stored format: "<ivHex>:<cipherHex>".
"""

import json
import os
from typing import Any

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from shared.helper.HelperConfig import HelperConfig

IV_LENGTH = 16
KEY_LENGTH = 32


def derive_key(secret: str) -> bytes:
    """Pad/truncate the secret to exactly 32 bytes.

    Raises:
        ValueError: If the secret is empty or its first 32 characters are not 32 bytes in UTF-8.
    """
    if not secret:
        raise ValueError("Encryption secret must not be empty.")
    key = secret.ljust(KEY_LENGTH, "0")[:KEY_LENGTH].encode("utf-8")
    if len(key) != KEY_LENGTH:
        raise ValueError("Encryption secret must be ASCII within its first 32 characters.")
    return key


class EncryptionService:
    def __init__(self, helper_config: HelperConfig | None = None, secret: str | None = None):
        if secret is None:
            if helper_config is None:
                raise ValueError("EncryptionService needs either a helper_config or a secret.")
            secret = helper_config.get_string_val("ENCRYPTION_KEY")
        self._key = derive_key(secret)

    def encrypt(self, plaintext: str) -> str:
        iv = os.urandom(IV_LENGTH)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return f"{iv.hex()}:{ciphertext.hex()}"

    def decrypt(self, encrypted: str) -> str:
        """Decrypt an "<ivHex>:<cipherHex>" string.

        Raises:
            ValueError: If the value is malformed or was encrypted with another key.
        """
        iv_hex, sep, cipher_hex = encrypted.partition(":")
        if not sep:
            raise ValueError("Encrypted value must have the format '<ivHex>:<cipherHex>'.")
        iv = bytes.fromhex(iv_hex)
        ciphertext = bytes.fromhex(cipher_hex)
        decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        return (unpadder.update(padded) + unpadder.finalize()).decode("utf-8")

    def encrypt_json(self, value: Any) -> str:
        return self.encrypt(json.dumps(value))

    def decrypt_json(self, encrypted: str) -> Any:
        return json.loads(self.decrypt(encrypted))
