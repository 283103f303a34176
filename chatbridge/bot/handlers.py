"""Telegram message and command handlers."""

from __future__ import annotations

import asyncio
import logging
import re
import sys
import time
from typing import TYPE_CHECKING

from telegram import Update
from telegram.constants import ChatAction, ChatType
from telegram.error import TelegramError
from telegram.ext import ContextTypes

from chatbridge.bot.chunker import split_reply
from chatbridge.bot.security import is_privileged
from chatbridge.bot.session import MemoryMode
from chatbridge.config import settings
from chatbridge.llm.errors import AllCredentialsExhausted

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from telegram import Message

    from chatbridge.llm.orchestrator import RequestOrchestrator

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Sorry, I ran into an error. Please try again later."
EMPTY_REPLY = "I got an empty response. Try again?"
DENIED_NOTICE = "Only chat admins can use that command."
EPHEMERAL_SECONDS = 10
RECEIVED_REACTION = "👀"

HELP_TEXT = (
    "Hi! I'm an AI assistant. Talk to me by mentioning me, replying to one of "
    "my messages, or messaging me directly.\n\n"
    "/ask <question> - ask me something\n"
    "/clear - forget this conversation (admins)\n"
    "/memorymode channel|user - share memory per chat or keep it per user (admins)\n"
    "/stats - uptime and memory usage\n"
    "/ping - check latency\n"
    "/help - show this message\n\n"
    "I can search the web and look up YouTube channels and videos. "
    "I remember the last 10 exchanges."
)


def _orchestrator(context: ContextTypes.DEFAULT_TYPE) -> RequestOrchestrator:
    return context.bot_data["orchestrator"]


def _format_size(size_bytes: int) -> str:
    """Format byte count as a human-readable string."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    if size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    return f"{size_bytes / (1024 * 1024):.1f} MB"


def _format_uptime(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    days, hours = divmod(hours, 24)
    if days:
        return f"{days}d {hours}h {minutes}m"
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    return f"{minutes}m {secs}s"


def _peak_rss_bytes() -> int | None:
    """Peak resident set size of this process, or None where unsupported."""
    if sys.platform == "win32":
        return None
    import resource

    peak = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # ru_maxrss is bytes on macOS, kilobytes on Linux.
    return peak if sys.platform == "darwin" else peak * 1024


def extract_prompt(text: str, bot_username: str) -> str | None:
    """Return the prompt from a message that mentions the bot, else None."""
    mention = re.compile(rf"@{re.escape(bot_username)}\b", re.IGNORECASE)
    if not mention.search(text):
        return None
    return mention.sub("", text).strip()


async def _best_effort(action: Awaitable[object], what: str) -> None:
    """Await a platform call whose failure must not break the request."""
    try:
        await action
    except TelegramError:
        logger.warning("Failed to %s", what, exc_info=True)


async def _ephemeral_notice(
    message: Message, context: ContextTypes.DEFAULT_TYPE, text: str
) -> None:
    """Reply with a notice that deletes itself after a short delay."""
    notice = await message.reply_text(text)

    async def _cleanup() -> None:
        await asyncio.sleep(EPHEMERAL_SECONDS)
        await _best_effort(notice.delete(), "delete ephemeral notice")

    context.application.create_task(_cleanup())


async def send_reply(
    message: Message, context: ContextTypes.DEFAULT_TYPE, text: str
) -> None:
    """Reply with the first chunk and send the rest as follow-ups."""
    chunks = split_reply(text, settings.max_message_length)
    await message.reply_text(chunks[0])
    for chunk in chunks[1:]:
        await context.bot.send_message(chat_id=message.chat_id, text=chunk)


async def _process_prompt(
    update: Update, context: ContextTypes.DEFAULT_TYPE, prompt: str
) -> None:
    """Shared pipeline: acknowledge, generate, reply in chunks."""
    message = update.effective_message
    chat_id = update.effective_chat.id
    orchestrator = _orchestrator(context)
    memory_key = orchestrator.store.memory_key(chat_id, update.effective_user.id)

    await _best_effort(message.set_reaction(RECEIVED_REACTION), "react to message")
    await _best_effort(
        context.bot.send_chat_action(chat_id=chat_id, action=ChatAction.TYPING),
        "send typing action",
    )

    try:
        result_text = await orchestrator.generate(prompt, memory_key)
    except AllCredentialsExhausted as exc:
        logger.error("No credential could serve %s: %s", memory_key, exc.last_error)
        await message.reply_text(GENERIC_ERROR)
        return
    except Exception:
        logger.exception("Error generating response for %s", memory_key)
        await message.reply_text(GENERIC_ERROR)
        return

    if not result_text.strip():
        await message.reply_text(EMPTY_REPLY)
        return

    await send_reply(message, context, result_text)


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle text addressed to the bot: DMs, mentions, and replies to the bot."""
    message = update.effective_message
    if message is None or not message.text or update.effective_user is None:
        return
    if update.effective_user.is_bot:
        return

    if update.effective_chat.type == ChatType.PRIVATE:
        prompt = message.text.strip()
    else:
        prompt = extract_prompt(message.text, context.bot.username)
        replied = message.reply_to_message
        if prompt is None and replied and replied.from_user and replied.from_user.id == context.bot.id:
            prompt = message.text.strip()
        if prompt is None:
            return

    if not prompt:
        await message.reply_text("You mentioned me! Ask me anything.")
        return

    logger.info("Message from %s in %s: %s", update.effective_user.id, update.effective_chat.id, prompt[:80])
    await _process_prompt(update, context, prompt)


async def handle_ask(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /ask <question>."""
    question = " ".join(context.args or []).strip()
    if not question:
        await update.effective_message.reply_text("Usage: /ask <question>")
        return
    await _process_prompt(update, context, question)


async def handle_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help and /start: static usage text."""
    await update.effective_message.reply_text(HELP_TEXT)


async def handle_clear(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /clear: reset history for the current memory scope."""
    message = update.effective_message
    if not await is_privileged(update, context):
        await _ephemeral_notice(message, context, DENIED_NOTICE)
        return

    store = _orchestrator(context).store
    chat_id = update.effective_chat.id
    mode = store.get_mode(chat_id)
    count = store.clear(store.memory_key(chat_id, update.effective_user.id))
    scope = "this chat" if mode is MemoryMode.CHANNEL else "your personal history"
    await message.reply_text(f"Cleared {count} messages from {scope}. Starting fresh.")


async def handle_memorymode(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /memorymode channel|user: switch mode and clear all history."""
    message = update.effective_message
    if not await is_privileged(update, context):
        await _ephemeral_notice(message, context, DENIED_NOTICE)
        return

    store = _orchestrator(context).store
    chat_id = update.effective_chat.id
    args = context.args or []
    options = ", ".join(m.value for m in MemoryMode)

    if not args:
        await message.reply_text(
            f"Memory mode: {store.get_mode(chat_id).value}\nOptions: {options}"
        )
        return

    try:
        mode = MemoryMode(args[0].lower())
    except ValueError:
        await message.reply_text(f"Unknown mode '{args[0]}'. Valid options: {options}")
        return

    removed = store.set_mode(chat_id, mode)
    await message.reply_text(
        f"Memory mode → {mode.value}. Cleared all conversation history ({removed} contexts)."
    )


async def handle_stats(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /stats: report uptime and memory usage."""
    orchestrator = _orchestrator(context)
    started = context.bot_data.get("started_at", time.monotonic())
    peak_rss = _peak_rss_bytes()

    lines = [
        "Bot stats",
        f"Uptime: {_format_uptime(time.monotonic() - started)}",
        f"Credentials: {orchestrator.rotator.size}",
        f"Active contexts: {orchestrator.store.active_count}",
        f"Context memory: ~{_format_size(orchestrator.store.approx_size_bytes())}",
    ]
    if peak_rss is not None:
        lines.append(f"Process memory (peak): {_format_size(peak_rss)}")
    await update.effective_message.reply_text("\n".join(lines))


async def handle_ping(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /ping: measure a send/edit round trip."""
    t0 = time.monotonic()
    reply = await update.effective_message.reply_text("Pinging...")
    latency_ms = (time.monotonic() - t0) * 1000
    await _best_effort(reply.edit_text(f"Pong! {latency_ms:.0f} ms"), "edit ping reply")
