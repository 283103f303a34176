"""Telegram application factory."""

from __future__ import annotations

import logging
import time

from telegram import BotCommand
from telegram.ext import Application, CommandHandler, ContextTypes, MessageHandler, filters

from chatbridge.bot.handlers import (
    handle_ask,
    handle_clear,
    handle_help,
    handle_memorymode,
    handle_message,
    handle_ping,
    handle_stats,
)
from chatbridge.bot.reclaim import ReclaimScheduler
from chatbridge.bot.session import ConversationStore
from chatbridge.config import settings
from chatbridge.llm.models import MODEL_MAP, resolve_tiers
from chatbridge.llm.orchestrator import RequestOrchestrator
from chatbridge.llm.rotator import CredentialRotator, build_handles

logger = logging.getLogger(__name__)

BOT_COMMANDS = [
    BotCommand("ask", "Ask the assistant a question"),
    BotCommand("help", "How to use this bot"),
    BotCommand("clear", "Forget the current conversation (admins)"),
    BotCommand("memorymode", "Share memory per chat or per user (admins)"),
    BotCommand("stats", "Uptime, credentials and memory"),
    BotCommand("ping", "Check latency"),
]


def build_orchestrator() -> RequestOrchestrator:
    """Wire the store, credential rotation and tools from settings."""
    from chatbridge.tools import registry

    models = resolve_tiers(settings.get_chat_models())
    if not models:
        logger.warning("No valid CHAT_MODELS configured, falling back to sonnet")
        models = [MODEL_MAP["sonnet"]]

    handles = build_handles(
        settings.get_anthropic_api_keys(), models, max_tokens=settings.max_output_tokens
    )
    store = ConversationStore(max_turns=settings.history_max_turns)
    logger.info("Tools enabled: %s", registry.tool_names or "none")
    return RequestOrchestrator(
        store,
        CredentialRotator(handles),
        registry,
        max_tool_rounds=settings.max_tool_rounds,
    )


async def handle_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Last-resort guard: log anything a handler let escape and keep running."""
    logger.error("Unhandled error while processing update %s", update, exc_info=context.error)


async def _post_init(app: Application) -> None:
    """Called after the Application is fully initialized (event loop running)."""
    reclaimer = ReclaimScheduler(app.bot_data["orchestrator"].store)
    await reclaimer.start()
    app.bot_data["reclaimer"] = reclaimer

    await app.bot.set_my_commands(BOT_COMMANDS)
    logger.info("Bot @%s ready", app.bot.username)


async def _post_shutdown(app: Application) -> None:
    """Called during graceful shutdown."""
    reclaimer = app.bot_data.get("reclaimer")
    if reclaimer is not None:
        await reclaimer.stop()


def create_app(orchestrator: RequestOrchestrator | None = None) -> Application:
    """Build and configure the Telegram application."""
    app = Application.builder().token(settings.telegram_bot_token).concurrent_updates(True).build()

    app.bot_data["orchestrator"] = orchestrator or build_orchestrator()
    app.bot_data["started_at"] = time.monotonic()

    app.add_handler(CommandHandler("start", handle_help))
    app.add_handler(CommandHandler("help", handle_help))
    app.add_handler(CommandHandler("ask", handle_ask))
    app.add_handler(CommandHandler("clear", handle_clear))
    app.add_handler(CommandHandler("memorymode", handle_memorymode))
    app.add_handler(CommandHandler("stats", handle_stats))
    app.add_handler(CommandHandler("ping", handle_ping))
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_message))
    app.add_error_handler(handle_error)

    app.post_init = _post_init
    app.post_shutdown = _post_shutdown

    return app
