from __future__ import annotations

from typing import List

import pytest

from codec.keys import Ed25519Signer
from codec.records import PrivateRecord, RecordCodec
from common.config import Settings
from scanner import handler as scanner


SEED = bytes([1]) * 32
OTHER_SEED = bytes([2]) * 32


class _FakeApi:
    def __init__(self, outputs: List[str]) -> None:
        self.outputs = outputs
        self.closed = False

    def fetch_encrypted_outputs(self) -> List[str]:
        return list(self.outputs)

    def close(self) -> None:
        self.closed = True


class _FakeSSM:
    def __init__(self, value: str) -> None:
        self.value = value

    def get_parameter(self, *, Name: str, WithDecryption: bool):  # noqa: ARG002
        return {"Parameter": {"Name": Name, "Value": self.value}}


def _outputs() -> List[str]:
    mine = RecordCodec.from_signer(Ed25519Signer(SEED))
    theirs = RecordCodec.from_signer(Ed25519Signer(OTHER_SEED))
    return [
        mine.encode_record(PrivateRecord(amount="1000000000", blinding="42", index=3, asset_id="SOL")).hex(),
        theirs.encode_record(PrivateRecord(amount="5", blinding="1", index=4, asset_id="SOL")).hex(),
        mine.encode_record(PrivateRecord(amount="250", blinding="9", index=7, asset_id="USDC")).hex(),
        mine.encode_record(PrivateRecord(amount="500000000", blinding="11", index=1, asset_id="SOL")).hex(),
    ]


def _settings() -> Settings:
    return Settings(program_id=None, utxo_api_url="https://indexer.test", param_prefix="/relay/")


def test_run_once_with_injected_signer():
    api = _FakeApi(_outputs())

    out = scanner.run_once(_settings(), signer=Ed25519Signer(SEED), api=api)

    assert out["ok"] is True
    assert out["scanned"] == 4
    assert out["owned"] == 3
    assert out["balances"] == {"SOL": "1500000000", "USDC": "250"}
    assert out["indexes"] == [1, 3, 7]
    assert api.closed is False  # injected clients are left open


def test_run_once_loads_wallet_secret_from_ssm():
    api = _FakeApi(_outputs())

    out = scanner.run_once(_settings(), api=api, ssm=_FakeSSM(SEED.hex()))

    assert out["owned"] == 3


def test_run_once_other_wallet_owns_nothing():
    out = scanner.run_once(_settings(), signer=Ed25519Signer(OTHER_SEED), api=_FakeApi(_outputs()[:1]))

    assert out["owned"] == 0
    assert out["balances"] == {}


def test_lambda_handler_requires_param_prefix(monkeypatch):
    for name in ("PARAM_PREFIX", "UTXO_RELAY_PARAM_PREFIX"):
        monkeypatch.delenv(name, raising=False)

    with pytest.raises(RuntimeError, match="PARAM_PREFIX"):
        scanner.lambda_handler({}, None)
