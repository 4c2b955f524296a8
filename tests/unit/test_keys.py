from __future__ import annotations

import hashlib

import pytest

from codec.errors import SigningFailed
from codec.keys import (
    KEY_LENGTH,
    SIGN_IN_MESSAGE,
    Ed25519Signer,
    EncryptionKey,
    derive_identity_seed,
    derive_key,
)


class FixedSigner:
    def __init__(self, signature: bytes) -> None:
        self.signature = signature
        self.messages: list[bytes] = []

    def sign(self, message: bytes) -> bytes:
        self.messages.append(message)
        return self.signature


class BrokenSigner:
    def sign(self, message: bytes) -> bytes:
        raise ConnectionError("wallet disconnected")


def test_derive_key_takes_31_byte_prefix_of_signature():
    sig = bytes(range(1, 65))
    signer = FixedSigner(sig)

    key = derive_key(signer)

    assert signer.messages == [SIGN_IN_MESSAGE]
    assert key.material == sig[:KEY_LENGTH]
    assert key.cipher_key == sig[:16]
    assert key.auth_key == sig[16:31]
    assert len(key.auth_key) == 15


def test_derive_key_is_deterministic_for_ed25519():
    seed = bytes([1]) * 32
    k1 = derive_key(Ed25519Signer(seed))
    k2 = derive_key(Ed25519Signer(seed))
    k3 = derive_key(Ed25519Signer(bytes([2]) * 32))

    assert k1 == k2
    assert k1 != k3


def test_ed25519_signer_accepts_64_byte_secret_key():
    seed = bytes(range(32))
    secret_key = seed + bytes(32)  # public half is ignored

    assert derive_key(Ed25519Signer(secret_key)) == derive_key(Ed25519Signer(seed))


def test_ed25519_signer_rejects_bad_length():
    with pytest.raises(ValueError):
        Ed25519Signer(b"short")


def test_signer_error_becomes_signing_failed():
    with pytest.raises(SigningFailed) as exc:
        derive_key(BrokenSigner())
    assert isinstance(exc.value.__cause__, ConnectionError)


def test_short_signature_is_signing_failed():
    with pytest.raises(SigningFailed):
        derive_key(FixedSigner(b"\x01" * 30))


def test_discard_zeroes_and_blocks_use():
    key = EncryptionKey(b"\x07" * KEY_LENGTH)
    key.discard()

    assert key.discarded
    with pytest.raises(ValueError):
        _ = key.material
    assert "07" not in repr(key)


def test_key_requires_exact_length():
    with pytest.raises(ValueError):
        EncryptionKey(b"\x00" * 32)


def test_identity_seed_is_sha256_hex_of_key():
    key = EncryptionKey(bytes(range(1, 32)))

    seed = derive_identity_seed(key)

    assert seed == "0x" + hashlib.sha256(bytes(range(1, 32))).hexdigest()
    assert derive_identity_seed(EncryptionKey(bytes(range(1, 32)))) == seed
