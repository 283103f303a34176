"""In-memory conversation store with a sliding window and idle reclamation."""

from __future__ import annotations

import logging
import sys
import time
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

DEFAULT_MAX_TURNS = 20  # 10 exchanges
DEFAULT_MAX_INACTIVITY = 30 * 24 * 3600.0  # 30 days


class MemoryMode(StrEnum):
    """Whether a chat shares one history or keeps one per user."""

    CHANNEL = "channel"
    USER = "user"


@dataclass
class Turn:
    """A single conversation turn."""

    role: str  # "user" or "model"
    content: str


@dataclass
class ConversationEntry:
    """History for one memory key."""

    history: list[Turn] = field(default_factory=list)
    last_activity: float = 0.0


class ConversationStore:
    """Volatile conversation state keyed by memory key.

    Nothing here is locked. Two requests for the same key can each read a
    history that lacks the other's in-flight turn; reclamation may run
    between them too, which is why it only removes entries strictly older
    than the threshold.
    """

    def __init__(
        self,
        max_turns: int = DEFAULT_MAX_TURNS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.max_turns = max_turns
        self._clock = clock
        self._entries: dict[str, ConversationEntry] = {}
        self._modes: dict[int, MemoryMode] = {}

    # -- Memory mode ---------------------------------------------------------

    def get_mode(self, chat_id: int) -> MemoryMode:
        return self._modes.get(chat_id, MemoryMode.CHANNEL)

    def set_mode(self, chat_id: int, mode: MemoryMode) -> int:
        """Switch a chat's mode. Clears every stored conversation.

        Returns the number of entries removed.
        """
        self._modes[chat_id] = MemoryMode(mode)
        removed = self.clear_all()
        logger.info("Memory mode for chat %s → %s (cleared %d contexts)", chat_id, mode, removed)
        return removed

    def memory_key(self, chat_id: int, user_id: int) -> str:
        """Derive the memory key for a message under the chat's current mode."""
        if self.get_mode(chat_id) is MemoryMode.USER:
            return f"user:{user_id}"
        return f"channel:{chat_id}"

    # -- Entries -------------------------------------------------------------

    def get(self, key: str) -> ConversationEntry | None:
        return self._entries.get(key)

    def get_or_create(self, key: str) -> ConversationEntry:
        """Return the entry for key, creating an empty one on first use."""
        entry = self._entries.get(key)
        if entry is None:
            entry = ConversationEntry(last_activity=self._clock())
            self._entries[key] = entry
        return entry

    def append(self, key: str, turn: Turn) -> None:
        """Append a turn and trim to the most recent ``max_turns``."""
        entry = self.get_or_create(key)
        entry.history.append(turn)
        if len(entry.history) > self.max_turns:
            del entry.history[: len(entry.history) - self.max_turns]

    def touch(self, key: str) -> None:
        self.get_or_create(key).last_activity = self._clock()

    def clear(self, key: str) -> int:
        """Drop one conversation. Returns the count of cleared turns."""
        entry = self._entries.pop(key, None)
        return len(entry.history) if entry else 0

    def clear_all(self) -> int:
        """Drop every conversation. Returns the count of cleared entries."""
        count = len(self._entries)
        self._entries.clear()
        return count

    def reclaim(self, now: float | None = None, max_inactivity: float = DEFAULT_MAX_INACTIVITY) -> int:
        """Remove entries idle for strictly longer than ``max_inactivity`` seconds."""
        if now is None:
            now = self._clock()
        stale = [
            key
            for key, entry in self._entries.items()
            if now - entry.last_activity > max_inactivity
        ]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.info("Reclaimed %d idle conversation(s)", len(stale))
        return len(stale)

    # -- Stats ---------------------------------------------------------------

    @property
    def active_count(self) -> int:
        return len(self._entries)

    def approx_size_bytes(self) -> int:
        """Rough footprint of stored history (object headers plus text)."""
        total = 0
        for key, entry in self._entries.items():
            total += sys.getsizeof(key) + sys.getsizeof(entry.history)
            total += sum(sys.getsizeof(t.content) for t in entry.history)
        return total
