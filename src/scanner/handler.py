from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from codec.keys import Ed25519Signer, Signer
from codec.records import RecordCodec, find_owned_records, sum_by_asset
from common.config import Settings, load_wallet_secret, setup_logging
from common.utxo_api import UtxoApiClient


logger = logging.getLogger(__name__)


def run_once(
    settings: Settings,
    *,
    signer: Optional[Signer] = None,
    api: Optional[UtxoApiClient] = None,
    ssm: Optional[object] = None,
) -> Dict[str, Any]:
    """
    Scan published outputs for records owned by the configured wallet.

    - Derives the record key from the wallet signer (SSM secret unless a
      signer is injected).
    - Fetches all encrypted outputs and trial-decrypts them.
    - Discards the key before returning.

    Returns: {"ok": True, "scanned": N, "owned": M, "balances": {...},
    "indexes": [...]}.
    """
    if signer is None:
        signer = Ed25519Signer(load_wallet_secret(settings, ssm=ssm))
    codec = RecordCodec.from_signer(signer)

    client = api or UtxoApiClient(settings.utxo_api_url)
    try:
        outputs = client.fetch_encrypted_outputs()
        owned = find_owned_records(outputs, codec)
    finally:
        codec.discard()
        if api is None:
            client.close()

    records = [o.record for o in owned]
    logger.info("Scanned %d outputs, %d owned", len(outputs), len(owned))
    return {
        "ok": True,
        "scanned": len(outputs),
        "owned": len(owned),
        "balances": {asset: str(total) for asset, total in sum_by_asset(records).items()},
        "indexes": sorted(r.index for r in records),
    }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """AWS Lambda entry for an on-demand wallet scan.

    Environment:
    - UTXO_API_URL (default: https://api.privacycash.org), PARAM_PREFIX, LOG_LEVEL
    - SSM under PARAM_PREFIX must provide: wallet_secret
    """
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    return run_once(settings)
