"""AES-CFB encryption with a fixed IV and HMAC-SHA256 signing."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

__all__ = ["encrypt", "decrypt", "sign"]

_KEY_SIZES = (16, 24, 32)


def _key_bytes(key: str) -> bytes:
    raw = key.encode("utf-8")
    if len(raw) not in _KEY_SIZES:
        raise ValueError("key length must be 16, 24, or 32 bytes")
    return raw


def _cipher(key_bytes: bytes, fixed_iv: str) -> Cipher:
    return Cipher(algorithms.AES(key_bytes), modes.CFB(fixed_iv.encode("utf-8")))


def encrypt(key: str, text: str, fixed_iv: str) -> str:
    """Encrypt ``text`` with AES-CFB and return URL-safe base64."""
    key_bytes = _key_bytes(key)
    encryptor = _cipher(key_bytes, fixed_iv).encryptor()
    ciphertext = encryptor.update(text.encode("utf-8")) + encryptor.finalize()
    return base64.urlsafe_b64encode(ciphertext).decode("ascii")


def decrypt(key: str, crypto_text: str, fixed_iv: str) -> str:
    """Decrypt URL-safe base64 AES-CFB ciphertext produced by :func:`encrypt`."""
    key_bytes = _key_bytes(key)
    try:
        ciphertext = base64.b64decode(crypto_text, altchars=b"-_", validate=True)
    except binascii.Error as exc:
        raise ValueError(f"illegal base64 data: {exc}") from exc
    decryptor = _cipher(key_bytes, fixed_iv).decryptor()
    plaintext = decryptor.update(ciphertext) + decryptor.finalize()
    return plaintext.decode("utf-8", errors="surrogateescape")


def sign(data: bytes, key: str) -> bytes:
    """Return ``data`` followed by the HMAC-SHA256 of an empty message under ``key``."""
    mac = hmac.new(key.encode("utf-8"), digestmod=hashlib.sha256)
    return bytes(data) + mac.digest()