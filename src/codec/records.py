from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .envelope import decrypt, encrypt
from .errors import AuthenticationFailed, InvalidRecordFormat, MalformedEnvelope
from .keys import EncryptionKey, Signer, derive_identity_seed, derive_key


logger = logging.getLogger(__name__)

DELIMITER = "|"
# CPython int() default str-digit limit
MAX_AMOUNT_DIGITS = 4300

_UNSIGNED_RE = re.compile(r"[0-9]+")
_SIGNED_RE = re.compile(r"-?[0-9]+")


def _as_decimal_str(v: Any) -> Any:
    if isinstance(v, bool):
        return v
    if isinstance(v, int):
        return str(v)
    return v


class PrivateRecord(BaseModel):
    """
    Confidential balance entry (a "UTXO") as published in encrypted form.

    Fields
    - amount: non-negative integer as a decimal string, at most
      MAX_AMOUNT_DIGITS digits so that amount_int always converts.
    - blinding: integer as a decimal string (arbitrary precision).
    - index: position of the commitment in the external ordered structure.
    - asset_id: opaque asset identifier (e.g. a mint address or "SOL").

    Notes
    - Python ints passed for amount/blinding are converted to decimal strings.
    - No field may contain the "|" delimiter used by the wire encoding.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    amount: str = Field(..., description="Non-negative decimal amount")
    blinding: str = Field(..., description="Decimal blinding factor")
    index: int = Field(..., ge=0, description="Commitment index")
    asset_id: str = Field(..., alias="assetId", min_length=1, description="Asset identifier")

    @field_validator("amount", "blinding", mode="before")
    @classmethod
    def _coerce_int(cls, v: Any) -> Any:
        return _as_decimal_str(v)

    @field_validator("amount")
    @classmethod
    def _check_amount(cls, v: str) -> str:
        if not _UNSIGNED_RE.fullmatch(v):
            raise ValueError("amount must be a non-negative decimal integer")
        if len(v) > MAX_AMOUNT_DIGITS:
            raise ValueError(f"amount must have at most {MAX_AMOUNT_DIGITS} digits")
        return v

    @field_validator("blinding")
    @classmethod
    def _check_blinding(cls, v: str) -> str:
        if not _SIGNED_RE.fullmatch(v):
            raise ValueError("blinding must be a decimal integer")
        return v

    @field_validator("asset_id")
    @classmethod
    def _check_asset_id(cls, v: str) -> str:
        if DELIMITER in v:
            raise ValueError(f"asset_id must not contain {DELIMITER!r}")
        return v

    @property
    def amount_int(self) -> int:
        return int(self.amount)

    def to_payload(self) -> bytes:
        return DELIMITER.join(
            [self.amount, self.blinding, str(self.index), self.asset_id]
        ).encode("utf-8")


def _parse_payload(plaintext: bytes) -> PrivateRecord:
    try:
        text = plaintext.decode("utf-8")
    except UnicodeDecodeError as ex:
        raise InvalidRecordFormat("Record plaintext is not UTF-8") from ex

    parts = text.split(DELIMITER)
    if len(parts) != 4 or any(p == "" for p in parts):
        raise InvalidRecordFormat("Invalid UTXO format after decryption")
    amount, blinding, index_s, asset_id = parts
    # ASCII digits only; int() alone would take "+3", " 3", "3_0" and non-ASCII digits
    if not _UNSIGNED_RE.fullmatch(index_s):
        raise InvalidRecordFormat(f"Record index is not an integer: {index_s!r}")
    index = int(index_s)

    try:
        return PrivateRecord(amount=amount, blinding=blinding, index=index, asset_id=asset_id)
    except ValidationError as ve:
        raise InvalidRecordFormat(f"Record fields failed validation: {ve}") from ve


def encode_record(record: PrivateRecord, key: EncryptionKey) -> bytes:
    """Serialize `amount|blinding|index|asset_id` and encrypt it."""
    return encrypt(key, record.to_payload())


def decode_record(envelope: bytes | bytearray | str, key: EncryptionKey) -> PrivateRecord:
    """Decrypt an envelope (bytes or hex) and parse the private record.

    Authentication errors propagate unchanged; anything that fails after
    authentication raises InvalidRecordFormat.
    """
    return _parse_payload(decrypt(key, envelope))


@dataclass(frozen=True)
class OwnedRecord:
    position: int
    envelope: str
    record: PrivateRecord


class RecordCodec:
    """Holds one session key and exposes the codec operations bound to it."""

    def __init__(self, key: EncryptionKey) -> None:
        self._key = key

    @classmethod
    def from_signer(cls, signer: Signer) -> "RecordCodec":
        return cls(derive_key(signer))

    @property
    def key(self) -> EncryptionKey:
        return self._key

    def encrypt(self, plaintext: bytes | str) -> bytes:
        return encrypt(self._key, plaintext)

    def decrypt(self, envelope: bytes | bytearray | str) -> bytes:
        return decrypt(self._key, envelope)

    def encode_record(self, record: PrivateRecord) -> bytes:
        return encode_record(record, self._key)

    def decode_record(self, envelope: bytes | bytearray | str) -> PrivateRecord:
        return decode_record(envelope, self._key)

    def identity_seed(self) -> str:
        return derive_identity_seed(self._key)

    def discard(self) -> None:
        self._key.discard()


def find_owned_records(envelopes: Iterable[bytes | str], codec: RecordCodec) -> List[OwnedRecord]:
    """
    Trial-decrypt published envelopes and keep the ones this key opens.

    - AuthenticationFailed means the envelope belongs to someone else; skipped.
    - Malformed envelopes or records are skipped with a warning.
    """
    owned: List[OwnedRecord] = []
    for pos, env in enumerate(envelopes):
        if not env:
            continue
        if not isinstance(env, (bytes, bytearray, str)):
            logger.warning("Skipping output #%d with unexpected type %s", pos, type(env).__name__)
            continue
        env_hex = env if isinstance(env, str) else bytes(env).hex()
        try:
            record = codec.decode_record(env)
        except AuthenticationFailed:
            continue
        except (MalformedEnvelope, InvalidRecordFormat) as ex:
            logger.warning("Skipping unreadable output #%d %s...: %s", pos, env_hex[:16], ex)
            continue
        owned.append(OwnedRecord(position=pos, envelope=env_hex, record=record))
    return owned


def sum_by_asset(records: Iterable[PrivateRecord]) -> Dict[str, int]:
    totals: Dict[str, int] = {}
    for r in records:
        totals[r.asset_id] = totals.get(r.asset_id, 0) + r.amount_int
    return totals


__all__ = [
    "DELIMITER",
    "PrivateRecord",
    "OwnedRecord",
    "RecordCodec",
    "encode_record",
    "decode_record",
    "find_owned_records",
    "sum_by_asset",
]
