from __future__ import annotations

import logging
from typing import Dict, Iterable, List

from .models import OutputRange


logger = logging.getLogger(__name__)


def _normalize(output: bytes | bytearray | str) -> str:
    if isinstance(output, (bytes, bytearray)):
        return bytes(output).hex()
    return output


class EncryptedOutputStore:
    """
    In-memory set of published encrypted outputs (hex envelopes).

    - Preserves insertion order, so ranges are stable between reloads that
      only append.
    - `replace()` swaps the whole contents at once; readers never observe a
      half-built set.
    """

    def __init__(self, outputs: Iterable[bytes | str] = ()) -> None:
        self._outputs: Dict[str, None] = {}
        for o in outputs:
            self._outputs[_normalize(o)] = None

    def add(self, output: bytes | bytearray | str) -> bool:
        """Add an output. Returns False when it was already present."""
        key = _normalize(output)
        if key in self._outputs:
            logger.debug("Encrypted output %s... already exists", key[:16])
            return False
        self._outputs[key] = None
        logger.debug("Added encrypted output %s...", key[:16])
        return True

    def contains(self, output: bytes | bytearray | str) -> bool:
        return _normalize(output) in self._outputs

    __contains__ = contains

    def __len__(self) -> int:
        return len(self._outputs)

    def count(self) -> int:
        return len(self._outputs)

    def all(self) -> List[str]:
        return list(self._outputs)

    def replace(self, outputs: Iterable[bytes | str]) -> int:
        """Replace contents with `outputs`; returns the new count."""
        fresh: Dict[str, None] = {}
        for o in outputs:
            if o:
                fresh[_normalize(o)] = None
        self._outputs = fresh
        return len(fresh)

    def range(self, start: int, end: int) -> OutputRange:
        """
        Inclusive page of outputs.

        - Negative `start` is treated as 0; `end < start` becomes `start`.
        - `has_more` is True when items exist after `end`.
        """
        items = list(self._outputs)
        total = len(items)
        if start < 0:
            start = 0
        if end < start:
            end = start
        return OutputRange(
            encrypted_outputs=items[start:end + 1],
            has_more=end + 1 < total,
            total=total,
            start=start,
            end=min(end, total - 1),
        )


__all__ = ["EncryptedOutputStore"]
