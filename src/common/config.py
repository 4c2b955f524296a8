from __future__ import annotations

import base64
import binascii
import json
import logging
import os
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

import boto3
from botocore.exceptions import ClientError


logger = logging.getLogger(__name__)

# Environment variable names
ENV_PROGRAM_ID = "PROGRAM_ID"
ENV_UTXO_API_URL = "UTXO_API_URL"
ENV_PARAM_PREFIX = "PARAM_PREFIX"
ENV_LOG_LEVEL = "LOG_LEVEL"

# Fallbacks with the project prefix
FALLBACK_ENV_PROGRAM_ID = "UTXO_RELAY_PROGRAM_ID"
FALLBACK_ENV_PARAM_PREFIX = "UTXO_RELAY_PARAM_PREFIX"

DEFAULT_UTXO_API_URL = "https://api.privacycash.org"
DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# SSM parameter holding the wallet secret used for key derivation
PARAM_WALLET_SECRET = "wallet_secret"


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.environ.get(name)
    return val if val not in (None, "") else default


def _require(v: Optional[str], what: str) -> str:
    if not v:
        raise RuntimeError(f"Missing required configuration: {what}")
    return v


def load_ssm_params(prefix: str, names: Iterable[str], *, ssm: Optional[object] = None) -> Dict[str, Optional[str]]:
    """Read decrypted SSM parameters under `prefix`.

    Missing or access-denied parameters come back as None; other client
    errors propagate.
    """
    client = ssm or boto3.client("ssm")
    out: Dict[str, Optional[str]] = {k: None for k in names}
    for name in out:
        full = f"{prefix}{name}"
        try:
            resp = client.get_parameter(Name=full, WithDecryption=True)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in ("ParameterNotFound", "AccessDeniedException"):
                logger.warning("SSM parameter %s unavailable (%s)", full, code)
                continue
            raise
        val = resp.get("Parameter", {}).get("Value")
        out[name] = val if isinstance(val, str) and val != "" else None
    return out


def parse_wallet_secret(raw: str) -> bytes:
    """
    Decode a wallet secret from its stored text form.

    Accepts a JSON array of byte values (keypair file format), hex, or
    base64. Raises ValueError when none of them apply.
    """
    s = raw.strip()
    if s.startswith("["):
        try:
            values = json.loads(s)
            return bytes(values)
        except (ValueError, TypeError) as ex:
            raise ValueError("wallet secret JSON array is invalid") from ex
    try:
        return bytes.fromhex(s)
    except ValueError:
        pass
    try:
        return base64.b64decode(s, validate=True)
    except (binascii.Error, ValueError) as ex:
        raise ValueError("wallet secret is neither hex nor base64") from ex


@dataclass(frozen=True)
class Settings:
    program_id: Optional[str]
    utxo_api_url: str
    param_prefix: Optional[str]
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            program_id=_getenv(ENV_PROGRAM_ID) or _getenv(FALLBACK_ENV_PROGRAM_ID),
            utxo_api_url=_getenv(ENV_UTXO_API_URL) or DEFAULT_UTXO_API_URL,
            param_prefix=_getenv(ENV_PARAM_PREFIX) or _getenv(FALLBACK_ENV_PARAM_PREFIX),
            log_level=_getenv(ENV_LOG_LEVEL) or "INFO",
        )

    def require_program_id(self) -> str:
        return _require(self.program_id, ENV_PROGRAM_ID)

    def require_param_prefix(self) -> str:
        return _require(self.param_prefix, ENV_PARAM_PREFIX)


def load_wallet_secret(settings: Settings, *, ssm: Optional[object] = None) -> bytes:
    prefix = settings.require_param_prefix()
    params = load_ssm_params(prefix, [PARAM_WALLET_SECRET], ssm=ssm)
    raw = _require(params.get(PARAM_WALLET_SECRET), f"{prefix}{PARAM_WALLET_SECRET}")
    return parse_wallet_secret(raw)


def setup_logging(level: str = "INFO", *, fmt: str = DEFAULT_LOG_FORMAT) -> None:
    """Configure root logging with a single stream handler."""
    lvl = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=lvl, format=fmt, handlers=[logging.StreamHandler()])


__all__ = [
    "Settings",
    "load_ssm_params",
    "load_wallet_secret",
    "parse_wallet_secret",
    "setup_logging",
]
