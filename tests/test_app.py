"""Tests for application wiring and startup."""

from unittest.mock import MagicMock, patch

import pytest
from telegram.ext import CommandHandler, MessageHandler

from chatbridge.bot.app import BOT_COMMANDS, build_orchestrator, create_app
from chatbridge.bot.main import main
from chatbridge.llm.models import MODEL_MAP


@pytest.fixture
def _configured(monkeypatch) -> None:
    monkeypatch.setattr("chatbridge.config.settings.telegram_bot_token", "123456:TEST-token")
    monkeypatch.setattr("chatbridge.config.settings.anthropic_api_keys", "k1,k2")


@patch("chatbridge.llm.client.anthropic.AsyncAnthropic")
def test_build_orchestrator(_mock_anthropic, _configured, monkeypatch) -> None:
    monkeypatch.setattr("chatbridge.config.settings.chat_models", "haiku,bogus")
    monkeypatch.setattr("chatbridge.config.settings.max_tool_rounds", 2)

    orch = build_orchestrator()

    assert orch.rotator.size == 2
    assert [c.label for c in orch.rotator.credentials] == ["key1/haiku", "key2/haiku"]
    assert orch.max_tool_rounds == 2
    assert orch.store.active_count == 0


@patch("chatbridge.llm.client.anthropic.AsyncAnthropic")
def test_build_orchestrator_falls_back_to_default_tier(
    _mock_anthropic, _configured, monkeypatch
) -> None:
    monkeypatch.setattr("chatbridge.config.settings.chat_models", "bogus")
    orch = build_orchestrator()
    assert orch.rotator.credentials[0].handle.model == MODEL_MAP["sonnet"]


def test_create_app_registers_commands(_configured) -> None:
    orchestrator = MagicMock()
    app = create_app(orchestrator)

    assert app.bot_data["orchestrator"] is orchestrator
    handlers = [h for group in app.handlers.values() for h in group]
    commands = {cmd for h in handlers if isinstance(h, CommandHandler) for cmd in h.commands}
    assert commands == {"start", "help", "ask", "clear", "memorymode", "stats", "ping"}
    assert any(isinstance(h, MessageHandler) for h in handlers)
    assert {c.command for c in BOT_COMMANDS} <= commands


def test_main_exits_without_required_settings(monkeypatch) -> None:
    monkeypatch.setattr("chatbridge.config.settings.telegram_bot_token", "")
    with pytest.raises(SystemExit) as exc_info:
        main()
    assert exc_info.value.code == 1
