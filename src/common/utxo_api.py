from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from state.models import OutputRange


logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.privacycash.org"


class UtxoApiError(RuntimeError):
    """Base error for the UTXO API client."""


class UtxoApiFormatError(UtxoApiError):
    """API returned a payload in an unexpected shape."""


class UtxoApiClient:
    """
    Minimal client for an indexer's published encrypted outputs.

    Notes
    - `GET /utxos` returns either `{count, encrypted_outputs}` or a list of
      objects carrying `encrypted_output`; both are accepted.
    - Retries 429, 5xx and transport errors with exponential backoff.
    - Envelopes are returned as hex strings, unmodified.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE,
        *,
        timeout: float = 15.0,
        max_attempts: int = 5,
        backoff: float = 1.0,
        client: Optional[httpx.Client] = None,
        sleep=time.sleep,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required")
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._backoff = backoff
        self._sleep = sleep
        self._owns_client = client is None
        self._client = client or httpx.Client(base_url=self._base_url, timeout=self._timeout)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "UtxoApiClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --------------- Public API ---------------
    def fetch_encrypted_outputs(self) -> List[str]:
        """Fetch every published encrypted output."""
        data = self._get("/utxos")
        if isinstance(data, list):
            return [
                item["encrypted_output"]
                for item in data
                if isinstance(item, dict)
                and isinstance(item.get("encrypted_output"), str)
                and item["encrypted_output"]
            ]
        if isinstance(data, dict) and isinstance(data.get("encrypted_outputs"), list):
            outputs = [o for o in data["encrypted_outputs"] if isinstance(o, str) and o]
            logger.info("Fetched %s encrypted outputs (reported count=%s)", len(outputs), data.get("count"))
            return outputs
        raise UtxoApiFormatError("Unexpected /utxos payload shape")

    def fetch_range(self, start: int, end: int) -> OutputRange:
        """Fetch an inclusive page of encrypted outputs."""
        data = self._get("/utxos/range", params={"start": start, "end": end})
        if not isinstance(data, dict):
            raise UtxoApiFormatError("Unexpected /utxos/range payload shape")
        try:
            return OutputRange.model_validate(data)
        except ValidationError as ve:
            raise UtxoApiFormatError(f"Failed to parse range payload: {ve}") from ve

    # --------------- Internal ---------------
    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        attempt = 0
        backoff = self._backoff
        last_exc: Optional[Exception] = None
        while attempt < self._max_attempts:
            try:
                resp = self._client.get(path, params=params)
            except (httpx.TimeoutException, httpx.TransportError) as exc:
                last_exc = exc
                logger.warning("GET %s failed (attempt %d): %s", path, attempt + 1, exc)
            else:
                if resp.status_code == 200:
                    try:
                        return resp.json()
                    except ValueError as exc:
                        raise UtxoApiFormatError("Failed to parse JSON from UTXO API") from exc
                if resp.status_code in (429, 500, 502, 503, 504):
                    last_exc = UtxoApiError(f"HTTP {resp.status_code} from UTXO API")
                    logger.warning(
                        "GET %s returned %d, retrying in %.1fs", path, resp.status_code, backoff
                    )
                else:
                    raise UtxoApiError(f"HTTP {resp.status_code} from UTXO API: {resp.text[:200]}")

            attempt += 1
            if attempt < self._max_attempts:
                self._sleep(backoff)
                backoff = min(backoff * 2, 16.0)

        if last_exc is not None:
            raise UtxoApiError("Failed request after retries") from last_exc
        raise UtxoApiError("Failed request after retries (unknown error)")


__all__ = ["UtxoApiClient", "UtxoApiError", "UtxoApiFormatError"]
