"""AES-256-GCM helpers for per-company model-access credentials.

Ciphertexts use the ``iv:authTag:data`` layout (each part base64) written by the
dashboard, with a key derived by scrypt from ``ENCRYPTION_KEY``.
"""
from __future__ import annotations

import base64
import binascii
import logging
import os
from functools import lru_cache

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from app.core.config import settings

logger = logging.getLogger(__name__)

IV_LENGTH = 16
AUTH_TAG_LENGTH = 16
_DEV_KEY = "default-dev-key-change-in-production"
_KDF_SALT = b"salt"


class DecryptionError(ValueError):
    pass


@lru_cache(maxsize=4)
def _derive_key(secret: str) -> bytes:
    kdf = Scrypt(salt=_KDF_SALT, length=32, n=16384, r=8, p=1)
    return kdf.derive(secret.encode("utf-8"))


def _encryption_key(secret: str | None = None) -> bytes:
    value = secret or settings.encryption_key
    if not value:
        logger.warning("encryption_key_missing using development key")
        value = _DEV_KEY
    return _derive_key(value)


def encrypt(plaintext: str, *, secret: str | None = None) -> str:
    if not plaintext:
        return ""
    iv = os.urandom(IV_LENGTH)
    sealed = AESGCM(_encryption_key(secret)).encrypt(iv, plaintext.encode("utf-8"), None)
    data, tag = sealed[:-AUTH_TAG_LENGTH], sealed[-AUTH_TAG_LENGTH:]
    return ":".join(base64.b64encode(part).decode("ascii") for part in (iv, tag, data))


def decrypt(encrypted: str, *, secret: str | None = None) -> str:
    if not encrypted:
        return ""
    parts = encrypted.split(":")
    if len(parts) != 3:
        raise DecryptionError("Invalid encrypted data format")
    try:
        iv, tag, data = (base64.b64decode(part, validate=True) for part in parts)
    except (binascii.Error, ValueError) as exc:
        raise DecryptionError("Invalid encrypted data encoding") from exc
    if len(tag) != AUTH_TAG_LENGTH or not iv:
        raise DecryptionError("Invalid encrypted data format")
    try:
        plaintext = AESGCM(_encryption_key(secret)).decrypt(iv, data + tag, None)
    except InvalidTag as exc:
        raise DecryptionError("Decryption failed") from exc
    return plaintext.decode("utf-8")
