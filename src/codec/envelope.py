from __future__ import annotations

import binascii
import os

from cryptography.hazmat.primitives import constant_time, hashes, hmac
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .errors import AuthenticationFailed, MalformedEnvelope
from .keys import EncryptionKey


IV_LENGTH = 16
TAG_LENGTH = 16
HEADER_LENGTH = IV_LENGTH + TAG_LENGTH

_AUTH_FAILED_MSG = "Failed to decrypt data. Invalid encryption key or corrupted data."


def _tag(key: EncryptionKey, iv: bytes, ciphertext: bytes) -> bytes:
    mac = hmac.HMAC(key.auth_key, hashes.SHA256())
    mac.update(iv)
    mac.update(ciphertext)
    return mac.finalize()[:TAG_LENGTH]


def _ctr(key: EncryptionKey, iv: bytes, data: bytes) -> bytes:
    # CTR is symmetric: the same keystream encrypts and decrypts
    cipher = Cipher(algorithms.AES(key.cipher_key), modes.CTR(iv))
    ctx = cipher.encryptor()
    return ctx.update(data) + ctx.finalize()


def to_envelope_bytes(envelope: bytes | bytearray | str) -> bytes:
    """Accept raw bytes or hex text (the transport form) and return bytes."""
    if isinstance(envelope, str):
        try:
            return binascii.unhexlify(envelope.strip())
        except (binascii.Error, ValueError) as ex:
            raise MalformedEnvelope("Envelope is not valid hex") from ex
    return bytes(envelope)


def encrypt(key: EncryptionKey, plaintext: bytes | str) -> bytes:
    """
    Encrypt `plaintext` into `IV || AuthTag || Ciphertext`.

    - IV: 16 fresh bytes from the OS CSPRNG on every call.
    - Cipher: AES-128-CTR under the first 16 key bytes.
    - Tag: HMAC-SHA256 over IV || ciphertext with key bytes 16..31,
      truncated to 16 bytes.
    """
    data = plaintext.encode("utf-8") if isinstance(plaintext, str) else bytes(plaintext)
    iv = os.urandom(IV_LENGTH)
    ciphertext = _ctr(key, iv, data)
    return iv + _tag(key, iv, ciphertext) + ciphertext


def decrypt(key: EncryptionKey, envelope: bytes | bytearray | str) -> bytes:
    """Verify and decrypt an envelope produced by `encrypt`.

    Raises:
    - MalformedEnvelope if shorter than the 32-byte header (or bad hex).
    - AuthenticationFailed on tag mismatch, whether from a wrong key or
      tampering.
    """
    raw = to_envelope_bytes(envelope)
    if len(raw) < HEADER_LENGTH:
        raise MalformedEnvelope(
            f"Envelope must be at least {HEADER_LENGTH} bytes, got {len(raw)}"
        )
    iv = raw[:IV_LENGTH]
    tag = raw[IV_LENGTH:HEADER_LENGTH]
    ciphertext = raw[HEADER_LENGTH:]

    if not constant_time.bytes_eq(tag, _tag(key, iv, ciphertext)):
        raise AuthenticationFailed(_AUTH_FAILED_MSG)
    return _ctr(key, iv, ciphertext)


__all__ = [
    "IV_LENGTH",
    "TAG_LENGTH",
    "HEADER_LENGTH",
    "encrypt",
    "decrypt",
    "to_envelope_bytes",
]
