"""Round-robin rotation across configured credential/model handles."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from chatbridge.llm.client import ModelHandle
from chatbridge.llm.models import friendly

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credential:
    """One entry of the credential set."""

    index: int
    label: str
    handle: ModelHandle


class CredentialRotator:
    """Cycles through credentials in a fixed order.

    The cursor is shared by every caller and is not locked: concurrent
    generations interleave on it. Rotation spreads load, it does not
    guarantee which credential a given call starts on.
    """

    def __init__(self, handles: Sequence[ModelHandle]) -> None:
        if not handles:
            msg = "CredentialRotator needs at least one model handle"
            raise ValueError(msg)
        self._credentials = tuple(
            Credential(index=i, label=h.label, handle=h) for i, h in enumerate(handles)
        )
        self._cursor = 0

    @property
    def size(self) -> int:
        return len(self._credentials)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def credentials(self) -> tuple[Credential, ...]:
        return self._credentials

    def next(self) -> Credential:
        """Return the credential at the cursor and advance it (mod N)."""
        credential = self._credentials[self._cursor]
        self._cursor = (self._cursor + 1) % len(self._credentials)
        return credential


def build_handles(api_keys: Sequence[str], models: Sequence[str], max_tokens: int) -> list[ModelHandle]:
    """Bind every key to every model tier, tier-major.

    All keys are tried on the primary tier before any key drops to the
    next tier, so ``[k1, k2] x [sonnet, haiku]`` yields
    ``k1/sonnet, k2/sonnet, k1/haiku, k2/haiku``.
    """
    handles = [
        ModelHandle(
            key,
            model,
            label=f"key{key_index + 1}/{friendly(model)}",
            max_tokens=max_tokens,
        )
        for model in models
        for key_index, key in enumerate(api_keys)
    ]
    logger.info("Credential set: %s", ", ".join(h.label for h in handles))
    return handles
