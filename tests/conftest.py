"""Shared test fixtures."""

import pytest

from chatbridge.bot.session import ConversationStore


class FakeClock:
    """Manually advanced clock for time-dependent store behavior."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> ConversationStore:
    """A conversation store driven by the fake clock."""
    return ConversationStore(max_turns=20, clock=clock)
