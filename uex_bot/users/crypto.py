"""
Credential encryption at rest.

Tokens look like ``<nonce hex>:<ciphertext hex>``. The cipher is AES-256-GCM,
so a token that was tampered with, or that was written under a different
passphrase, fails to decrypt instead of producing garbage. The key is derived
once per process from the configured passphrase with PBKDF2.
"""
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from uex_bot.errors import ConfigError, DecryptionError

KDF_SALT = b"uex-discord-bot-credentials-v1"  # Fixed salt for deterministic key
KDF_ITERATIONS = 100000
KEY_BYTES = 32
NONCE_BYTES = 12
TOKEN_SEPARATOR = ":"


def derive_key(passphrase: str) -> bytes:
    """Derive a 256-bit key from the configured passphrase."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_BYTES,
        salt=KDF_SALT,
        iterations=KDF_ITERATIONS,
    )
    return kdf.derive(passphrase.encode("utf-8"))


class CredentialCipher:
    """Encrypts and decrypts short secret strings under one static key."""

    def __init__(self, passphrase: str):
        if not passphrase:
            raise ConfigError("USER_ENCRYPTION_KEY must not be empty")
        self._aead = AESGCM(derive_key(passphrase))

    def encrypt(self, plaintext: str) -> str:
        nonce = os.urandom(NONCE_BYTES)
        ciphertext = self._aead.encrypt(nonce, plaintext.encode("utf-8"), None)
        return nonce.hex() + TOKEN_SEPARATOR + ciphertext.hex()

    def decrypt(self, token: str) -> str:
        if not isinstance(token, str):
            raise DecryptionError("Credential token must be a string")

        parts = token.split(TOKEN_SEPARATOR)
        if len(parts) != 2:
            raise DecryptionError(f"Malformed credential token: expected 2 parts, got {len(parts)}")

        try:
            nonce = bytes.fromhex(parts[0])
            ciphertext = bytes.fromhex(parts[1])
        except ValueError as e:
            raise DecryptionError("Malformed credential token: not hex encoded") from e

        if len(nonce) != NONCE_BYTES:
            raise DecryptionError(f"Malformed credential token: nonce must be {NONCE_BYTES} bytes")

        try:
            plaintext = self._aead.decrypt(nonce, ciphertext, None)
        except InvalidTag as e:
            raise DecryptionError("Credential token failed authentication (wrong key or tampered)") from e

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionError("Decrypted credential is not valid UTF-8") from e
