"""Privilege checks for administrative commands."""

import logging

from telegram import Update
from telegram.constants import ChatMemberStatus, ChatType
from telegram.error import TelegramError
from telegram.ext import ContextTypes

from chatbridge.config import settings

logger = logging.getLogger(__name__)

_PRIVILEGED_STATUSES = {ChatMemberStatus.ADMINISTRATOR, ChatMemberStatus.OWNER}

_admins: set[int] | None = None


def _get_admins() -> set[int]:
    """Lazily load and cache the configured admin user IDs."""
    global _admins  # noqa: PLW0603
    if _admins is None:
        _admins = settings.get_admin_user_ids()
        logger.info("Admin user IDs: %s", _admins)
    return _admins


async def is_privileged(update: Update, context: ContextTypes.DEFAULT_TYPE) -> bool:
    """Check if the sender may run administrative commands.

    Configured admins always may. In a private chat the user owns the
    conversation. In groups, chat administrators and the owner may.
    """
    user = update.effective_user
    chat = update.effective_chat
    if user is None or chat is None:
        return False

    if user.id in _get_admins():
        return True

    if chat.type == ChatType.PRIVATE:
        return True

    try:
        member = await context.bot.get_chat_member(chat.id, user.id)
    except TelegramError:
        logger.warning("Could not fetch chat member %s in %s", user.id, chat.id, exc_info=True)
        return False
    return member.status in _PRIVILEGED_STATUSES
