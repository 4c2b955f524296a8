from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional

from common.config import Settings
from common.utxo_api import UtxoApiClient
from state.coalescer import ReloadCoalescer
from state.outputs import EncryptedOutputStore


logger = logging.getLogger(__name__)


def _response(status: int, **body: Any) -> Dict[str, Any]:
    return {"status": status, "body": body}


def is_relevant(payload: Any, program_id: str) -> bool:
    """Return True when any transaction has an instruction for `program_id`.

    `payload` is the webhook body: a list of transactions, each with an
    optional `instructions` list of `{programId, ...}` objects.
    """
    if not isinstance(payload, list):
        return False
    for tx in payload:
        if not isinstance(tx, dict):
            continue
        instructions = tx.get("instructions")
        if not isinstance(instructions, list):
            continue
        matches = [ix for ix in instructions if isinstance(ix, dict) and ix.get("programId") == program_id]
        if matches:
            logger.info(
                "Found %d instructions for program in transaction %s",
                len(matches),
                tx.get("signature", "unknown"),
            )
            return True
    return False


def handle_webhook(payload: Any, *, coalescer: ReloadCoalescer, program_id: str) -> Dict[str, Any]:
    """
    Handle a chain-update notification.

    - Non-list payloads are rejected with status 400.
    - Payloads without instructions for `program_id` are acknowledged
      without a reload.
    - Otherwise a reload is triggered; the handler never waits for it.

    Must run on the event loop thread that owns `coalescer`.
    """
    if not isinstance(payload, list):
        logger.info("Invalid webhook payload format - expected array")
        return _response(400, success=False, error="Invalid webhook payload format - expected array")

    logger.info("Received webhook with %d transactions", len(payload))
    if not is_relevant(payload, program_id):
        logger.info("No relevant transactions for program, skipping reload")
        return _response(200, success=True, message="No relevant transactions found")

    started = coalescer.trigger()
    return _response(
        200,
        success=True,
        message="Webhook received, reload triggered",
        started=started,
    )


def make_reload(
    fetch: Callable[[], Iterable[str]],
    store: EncryptedOutputStore,
) -> Callable[[], Awaitable[None]]:
    """Build the async reload: run blocking `fetch` in a thread, swap the store."""

    async def reload() -> None:
        outputs = await asyncio.to_thread(lambda: list(fetch()))
        count = store.replace(outputs)
        logger.info("Encrypted outputs reloaded: %d total", count)

    return reload


@dataclass
class Indexer:
    store: EncryptedOutputStore
    coalescer: ReloadCoalescer
    program_id: str
    api: Optional[UtxoApiClient] = None

    def handle(self, payload: Any) -> Dict[str, Any]:
        return handle_webhook(payload, coalescer=self.coalescer, program_id=self.program_id)

    def close(self) -> None:
        if self.api is not None:
            self.api.close()


def build_indexer(settings: Settings, *, api: Optional[UtxoApiClient] = None) -> Indexer:
    """Wire store, upstream API client and coalescer from settings."""
    program_id = settings.require_program_id()
    client = api or UtxoApiClient(settings.utxo_api_url)
    store = EncryptedOutputStore()
    coalescer = ReloadCoalescer(make_reload(client.fetch_encrypted_outputs, store), name="output reload")
    return Indexer(store=store, coalescer=coalescer, program_id=program_id, api=client)
