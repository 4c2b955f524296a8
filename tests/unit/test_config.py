from __future__ import annotations

import base64
import json

import pytest
from botocore.exceptions import ClientError

from common.config import Settings, load_ssm_params, load_wallet_secret, parse_wallet_secret


class _FakeSSM:
    def __init__(self, params: dict[str, str], *, denied: tuple[str, ...] = ()) -> None:
        self._params = params
        self._denied = denied
        self.requested: list[tuple[str, bool]] = []

    def get_parameter(self, *, Name: str, WithDecryption: bool):
        self.requested.append((Name, WithDecryption))
        if Name in self._denied:
            raise ClientError({"Error": {"Code": "AccessDeniedException"}}, "GetParameter")
        if Name not in self._params:
            raise ClientError({"Error": {"Code": "ParameterNotFound"}}, "GetParameter")
        return {"Parameter": {"Name": Name, "Value": self._params[Name]}}


class _ThrottledSSM:
    def get_parameter(self, *, Name: str, WithDecryption: bool):  # noqa: ARG002
        raise ClientError({"Error": {"Code": "ThrottlingException"}}, "GetParameter")


def test_settings_from_env_with_defaults(monkeypatch):
    for name in ("PROGRAM_ID", "UTXO_RELAY_PROGRAM_ID", "UTXO_API_URL", "PARAM_PREFIX", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("UTXO_RELAY_PROGRAM_ID", "Prog111")
    monkeypatch.setenv("UTXO_API_URL", "")

    s = Settings.from_env()

    assert s.program_id == "Prog111"
    assert s.utxo_api_url == "https://api.privacycash.org"
    assert s.param_prefix is None
    assert s.log_level == "INFO"
    with pytest.raises(RuntimeError, match="PARAM_PREFIX"):
        s.require_param_prefix()


def test_load_ssm_params_missing_and_denied_are_none():
    ssm = _FakeSSM({"/relay/a": "1", "/relay/b": ""}, denied=("/relay/c",))

    out = load_ssm_params("/relay/", ["a", "b", "c", "d"], ssm=ssm)

    assert out == {"a": "1", "b": None, "c": None, "d": None}
    assert all(decrypt for _, decrypt in ssm.requested)


def test_load_ssm_params_other_errors_propagate():
    with pytest.raises(ClientError):
        load_ssm_params("/relay/", ["a"], ssm=_ThrottledSSM())


@pytest.mark.parametrize(
    "encode",
    [
        lambda b: b.hex(),
        lambda b: base64.b64encode(b).decode(),
        lambda b: json.dumps(list(b)),
    ],
)
def test_parse_wallet_secret_formats(encode):
    secret = bytes(range(64))
    assert parse_wallet_secret(encode(secret)) == secret


def test_parse_wallet_secret_rejects_garbage():
    with pytest.raises(ValueError):
        parse_wallet_secret("not a secret!")


def test_load_wallet_secret_requires_parameter():
    settings = Settings(program_id=None, utxo_api_url="https://x", param_prefix="/relay/")

    with pytest.raises(RuntimeError, match="wallet_secret"):
        load_wallet_secret(settings, ssm=_FakeSSM({}))

    ssm = _FakeSSM({"/relay/wallet_secret": ("01" * 32)})
    assert load_wallet_secret(settings, ssm=ssm) == b"\x01" * 32
