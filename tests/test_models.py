"""Tests for model tier resolution."""

from chatbridge.llm.models import MODEL_MAP, friendly, resolve, resolve_tiers


def test_friendly_name() -> None:
    assert friendly(MODEL_MAP["sonnet"]) == "sonnet"
    assert friendly(MODEL_MAP["haiku"]) == "haiku"
    assert friendly(MODEL_MAP["opus"]) == "opus"
    assert friendly("unknown-model") == "unknown-model"


def test_resolve_by_name_and_id() -> None:
    assert resolve("haiku") == MODEL_MAP["haiku"]
    assert resolve(MODEL_MAP["opus"]) == MODEL_MAP["opus"]
    assert resolve("gpt-4") is None


def test_resolve_tiers_keeps_order() -> None:
    assert resolve_tiers(["haiku", "sonnet"]) == [MODEL_MAP["haiku"], MODEL_MAP["sonnet"]]


def test_resolve_tiers_is_case_insensitive() -> None:
    assert resolve_tiers(["Sonnet"]) == [MODEL_MAP["sonnet"]]


def test_resolve_tiers_drops_unknown_and_duplicates() -> None:
    assert resolve_tiers(["sonnet", "gpt-4", "SONNET", MODEL_MAP["sonnet"]]) == [
        MODEL_MAP["sonnet"]
    ]


def test_resolve_tiers_empty() -> None:
    assert resolve_tiers([]) == []
