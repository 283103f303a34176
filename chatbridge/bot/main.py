"""Chatbridge entry point."""

import logging
import sys

from chatbridge.config import settings

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
)
# httpx logs every Telegram long-poll request at INFO.
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def main() -> None:
    """Validate configuration and start polling Telegram."""
    missing = settings.validate_required()
    if missing:
        logger.error("Missing required settings: %s", ", ".join(missing))
        sys.exit(1)

    from chatbridge.bot.app import create_app

    logger.info(
        "Starting chatbridge with %d API key(s), models=%s",
        len(settings.get_anthropic_api_keys()),
        settings.chat_models,
    )
    app = create_app()
    app.run_polling()


if __name__ == "__main__":
    main()
