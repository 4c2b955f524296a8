from __future__ import annotations

import hashlib
from typing import Optional, Protocol

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from .errors import SigningFailed


# Constant sign-in message; changing it changes every derived key.
SIGN_IN_MESSAGE = b"Privacy Money account sign in"

KEY_LENGTH = 31
CIPHER_KEY_LENGTH = 16


class Signer(Protocol):
    """Deterministic signing capability (wallet/session owned)."""

    def sign(self, message: bytes) -> bytes:
        ...


class EncryptionKey:
    """
    In-memory record encryption key.

    - 31 bytes: the first 16 are the AES-128 subkey, bytes 16..31 the
      HMAC subkey.
    - Never persisted. `discard()` zeroes the buffer; using a discarded key
      raises `ValueError`.
    """

    __slots__ = ("_buf", "_discarded")

    def __init__(self, material: bytes) -> None:
        if len(material) != KEY_LENGTH:
            raise ValueError(f"key material must be {KEY_LENGTH} bytes, got {len(material)}")
        self._buf = bytearray(material)
        self._discarded = False

    def __repr__(self) -> str:
        state = "discarded" if self._discarded else "active"
        return f"EncryptionKey(<{state}>)"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EncryptionKey):
            return NotImplemented
        return self.material == other.material

    __hash__ = None  # type: ignore[assignment]

    @property
    def material(self) -> bytes:
        if self._discarded:
            raise ValueError("encryption key has been discarded")
        return bytes(self._buf)

    @property
    def cipher_key(self) -> bytes:
        return self.material[:CIPHER_KEY_LENGTH]

    @property
    def auth_key(self) -> bytes:
        return self.material[CIPHER_KEY_LENGTH:KEY_LENGTH]

    @property
    def discarded(self) -> bool:
        return self._discarded

    def discard(self) -> None:
        for i in range(len(self._buf)):
            self._buf[i] = 0
        self._discarded = True


class Ed25519Signer:
    """
    Signer over an Ed25519 secret.

    Accepts a 32-byte seed, or the 64-byte wallet export format
    (seed || public key). Ed25519 signatures are deterministic, so the same
    secret always derives the same encryption key.
    """

    def __init__(self, secret: bytes) -> None:
        if len(secret) == 64:
            seed = secret[:32]
        elif len(secret) == 32:
            seed = secret
        else:
            raise ValueError("Ed25519 secret must be a 32-byte seed or 64-byte secret key")
        self._key = Ed25519PrivateKey.from_private_bytes(bytes(seed))

    def sign(self, message: bytes) -> bytes:
        return self._key.sign(message)


def derive_key(signer: Signer, *, message: Optional[bytes] = None) -> EncryptionKey:
    """Derive the record key from a signature over the sign-in message.

    Raises SigningFailed when the signer errors or the signature is too short.
    """
    msg = SIGN_IN_MESSAGE if message is None else message
    try:
        signature = signer.sign(msg)
    except Exception as ex:
        raise SigningFailed("Signing capability failed during key derivation") from ex
    if not isinstance(signature, (bytes, bytearray)) or len(signature) < KEY_LENGTH:
        raise SigningFailed(f"Signature must be at least {KEY_LENGTH} bytes")
    return EncryptionKey(bytes(signature[:KEY_LENGTH]))


def derive_identity_seed(key: EncryptionKey) -> str:
    """SHA-256 of the key as 0x-prefixed hex, used to seed the identity keypair."""
    return "0x" + hashlib.sha256(key.material).hexdigest()


__all__ = [
    "SIGN_IN_MESSAGE",
    "KEY_LENGTH",
    "Signer",
    "EncryptionKey",
    "Ed25519Signer",
    "derive_key",
    "derive_identity_seed",
]
