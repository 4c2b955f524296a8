from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class OutputRange(BaseModel):
    """
    One inclusive page of published encrypted outputs.

    Fields
    - encrypted_outputs: hex envelopes in store order.
    - has_more: True when outputs exist after `end`.
    - total: number of outputs in the store.
    - start / end: effective bounds after clamping; `end` is -1 for an
      empty store.

    Notes
    - Accepts the camelCase `hasMore` key used by the HTTP API.
    """

    model_config = ConfigDict(populate_by_name=True)

    encrypted_outputs: List[str] = Field(default_factory=list, description="Hex envelopes")
    has_more: bool = Field(default=False, alias="hasMore")
    total: int = Field(default=0, ge=0)
    start: int = Field(default=0, ge=0)
    end: int = Field(default=-1)

    @classmethod
    def empty(cls) -> "OutputRange":
        """Convenience constructor for an empty page."""
        return cls()
