"""
Authenticated codec for private balance records.

Modules:
- keys: key derivation from a signing capability, Ed25519 signer
- envelope: IV || tag || ciphertext (AES-128-CTR + truncated HMAC-SHA256)
- records: pipe-delimited record encoding, owned-record scanning
- errors: codec error taxonomy
"""

from .envelope import decrypt, encrypt
from .errors import (
    AuthenticationFailed,
    CodecError,
    InvalidRecordFormat,
    MalformedEnvelope,
    SigningFailed,
)
from .keys import EncryptionKey, Ed25519Signer, Signer, derive_identity_seed, derive_key
from .records import (
    OwnedRecord,
    PrivateRecord,
    RecordCodec,
    decode_record,
    encode_record,
    find_owned_records,
    sum_by_asset,
)

__all__ = [
    "AuthenticationFailed",
    "CodecError",
    "InvalidRecordFormat",
    "MalformedEnvelope",
    "SigningFailed",
    "EncryptionKey",
    "Ed25519Signer",
    "Signer",
    "derive_identity_seed",
    "derive_key",
    "encrypt",
    "decrypt",
    "OwnedRecord",
    "PrivateRecord",
    "RecordCodec",
    "decode_record",
    "encode_record",
    "find_owned_records",
    "sum_by_asset",
]
