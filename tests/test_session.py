"""Tests for the in-memory conversation store."""

import pytest

from chatbridge.bot.session import ConversationStore, MemoryMode, Turn

THIRTY_DAYS = 30 * 24 * 3600.0


def test_get_or_create_creates_and_reuses(store: ConversationStore) -> None:
    e1 = store.get_or_create("channel:1")
    e2 = store.get_or_create("channel:1")
    assert e1 is e2
    assert e1.history == []
    assert store.get_or_create("channel:2") is not e1


def test_get_or_create_sets_activity(store: ConversationStore, clock) -> None:
    entry = store.get_or_create("channel:1")
    assert entry.last_activity == clock.now


def test_append_and_retrieve(store: ConversationStore) -> None:
    store.append("k", Turn(role="user", content="hello"))
    store.append("k", Turn(role="model", content="hi there"))

    history = store.get("k").history
    assert [t.content for t in history] == ["hello", "hi there"]
    assert [t.role for t in history] == ["user", "model"]


def test_history_never_exceeds_bound(store: ConversationStore) -> None:
    for i in range(50):
        store.append("k", Turn(role="user", content=f"msg {i}"))
        assert len(store.get("k").history) <= 20


def test_trim_keeps_ten_most_recent_exchanges(store: ConversationStore) -> None:
    """12 exchanges in → exchanges 2..11 survive, oldest dropped first."""
    for i in range(12):
        store.append("k", Turn(role="user", content=f"q{i}"))
        store.append("k", Turn(role="model", content=f"a{i}"))

    history = store.get("k").history
    assert len(history) == 20
    assert history[0].content == "q2"
    assert history[1].content == "a2"
    assert history[-1].content == "a11"


def test_touch_updates_activity_without_append(store: ConversationStore, clock) -> None:
    store.get_or_create("k")
    clock.advance(100)
    store.touch("k")
    assert store.get("k").last_activity == clock.now
    assert store.get("k").history == []


def test_clear_returns_turn_count(store: ConversationStore) -> None:
    store.append("k", Turn(role="user", content="a"))
    store.append("k", Turn(role="model", content="b"))

    assert store.clear("k") == 2
    assert store.get("k") is None
    assert store.clear("k") == 0


def test_clear_all(store: ConversationStore) -> None:
    store.append("a", Turn(role="user", content="x"))
    store.append("b", Turn(role="user", content="y"))

    assert store.clear_all() == 2
    assert store.active_count == 0


# -- Reclamation ---------------------------------------------------------------


def test_reclaim_at_threshold_keeps_entry(store: ConversationStore, clock) -> None:
    store.touch("k")
    now = clock.now + THIRTY_DAYS
    assert store.reclaim(now=now, max_inactivity=THIRTY_DAYS) == 0
    assert store.get("k") is not None


def test_reclaim_past_threshold_removes_entry(store: ConversationStore, clock) -> None:
    store.touch("k")
    now = clock.now + THIRTY_DAYS + 1
    assert store.reclaim(now=now, max_inactivity=THIRTY_DAYS) == 1
    assert store.get("k") is None


def test_reclaim_only_stale_entries(store: ConversationStore, clock) -> None:
    store.touch("old")
    clock.advance(THIRTY_DAYS)
    store.touch("fresh")
    clock.advance(10)

    assert store.reclaim(max_inactivity=THIRTY_DAYS) == 1
    assert store.get("old") is None
    assert store.get("fresh") is not None


# -- Memory mode ---------------------------------------------------------------


def test_default_mode_is_channel(store: ConversationStore) -> None:
    assert store.get_mode(42) is MemoryMode.CHANNEL
    assert store.memory_key(42, 7) == "channel:42"


def test_user_mode_keys_by_user(store: ConversationStore) -> None:
    store.set_mode(42, MemoryMode.USER)
    assert store.memory_key(42, 7) == "user:7"
    # Other chats keep the default.
    assert store.memory_key(43, 7) == "channel:43"


def test_mode_switch_clears_all_entries(store: ConversationStore) -> None:
    store.append("channel:42", Turn(role="user", content="hi"))
    store.append("channel:99", Turn(role="user", content="other chat"))

    removed = store.set_mode(42, MemoryMode.USER)

    assert removed == 2
    assert store.get("channel:42") is None
    assert store.get("channel:99") is None


def test_set_mode_accepts_string(store: ConversationStore) -> None:
    store.set_mode(1, "user")
    assert store.get_mode(1) is MemoryMode.USER


def test_set_mode_rejects_unknown(store: ConversationStore) -> None:
    with pytest.raises(ValueError):
        store.set_mode(1, "global")


def test_approx_size_grows_with_history() -> None:
    s = ConversationStore()
    empty = s.approx_size_bytes()
    s.append("k", Turn(role="user", content="x" * 1000))
    assert s.approx_size_bytes() > empty + 1000
