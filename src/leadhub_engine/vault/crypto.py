"""Credential vault: authenticated encryption for stored third-party secrets.

Stored form is ``nonce:tag:ciphertext``, each segment hex-encoded. The
AES-256-GCM key is derived once from the master secret with scrypt.
"""

import hashlib
import hmac
import logging
import os
import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from leadhub_engine.common.exceptions import ConfigurationError, DecryptionError

logger = logging.getLogger(__name__)

KDF_SALT = b"salt"
KEY_LENGTH = 32
NONCE_LENGTH = 16
TAG_LENGTH = 16

MASKED_SECRET = "****************"


def derive_key(master_key: str) -> bytes:
    kdf = Scrypt(salt=KDF_SALT, length=KEY_LENGTH, n=2**14, r=8, p=1)
    return kdf.derive(master_key.encode("utf-8"))


class Vault:
    """Encrypts and decrypts secrets under a single derived key."""

    def __init__(self, master_key: str):
        if not master_key:
            raise ConfigurationError(
                "LEADHUB_ENCRYPTION_KEY is not set; refusing to start without a vault key"
            )
        self._aesgcm = AESGCM(derive_key(master_key))

    def encrypt(self, plaintext: str) -> str:
        nonce = os.urandom(NONCE_LENGTH)
        sealed = self._aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
        # AESGCM appends the tag to the ciphertext.
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
        return f"{nonce.hex()}:{tag.hex()}:{ciphertext.hex()}"

    def decrypt(self, secret: str) -> str:
        """Reverse ``encrypt``. Raises DecryptionError on any malformed or forged value."""
        if not isinstance(secret, str):
            raise DecryptionError("Invalid encrypted value")
        parts = secret.split(":")
        if len(parts) != 3:
            raise DecryptionError("Invalid encrypted value format")

        try:
            nonce, tag, ciphertext = (bytes.fromhex(p) for p in parts)
        except ValueError as exc:
            raise DecryptionError("Invalid encrypted value encoding") from exc

        if len(nonce) != NONCE_LENGTH or len(tag) != TAG_LENGTH:
            raise DecryptionError("Invalid encrypted value format")

        try:
            plaintext = self._aesgcm.decrypt(nonce, ciphertext + tag, None)
        except InvalidTag as exc:
            raise DecryptionError() from exc
        return plaintext.decode("utf-8")

    def try_decrypt(self, secret: str | None) -> str | None:
        """Decrypt, logging and returning None when the value is unusable."""
        if not secret:
            return None
        try:
            return self.decrypt(secret)
        except DecryptionError as exc:
            logger.error("Stored secret could not be decrypted: %s", exc.message)
            return None


def generate_webhook_id(length: int = 32) -> str:
    """Public routing token for a webhook channel."""
    return secrets.token_hex((length + 1) // 2)[:length]


def generate_webhook_secret(length: int = 64) -> str:
    return secrets.token_urlsafe(length)


def sign_payload(payload: bytes | str, secret: str) -> str:
    """HMAC-SHA256 hex digest of ``payload`` keyed by ``secret``."""
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def validate_webhook_signature(payload: bytes | str, signature: str, secret: str) -> bool:
    """Constant-time check of an HMAC-SHA256 hex signature."""
    if not signature or not secret or payload is None:
        return False
    try:
        expected = sign_payload(payload, secret)
        return hmac.compare_digest(expected.encode("ascii"), signature.strip().lower().encode("ascii"))
    except (TypeError, UnicodeError):
        return False


def mask_secret(value: str | None) -> str | None:
    """Placeholder shown instead of a stored secret; None when nothing is stored."""
    return MASKED_SECRET if value else None
