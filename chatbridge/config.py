"""Application settings loaded from environment variables."""

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

MAX_BACKEND_KEYS = 5


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


def _split_csv(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


class Settings(BaseSettings):
    """Chatbridge configuration. All values come from environment variables."""

    # Telegram
    telegram_bot_token: str = Field(default="")
    admin_user_ids: str = Field(default="")
    max_message_length: int = Field(default=4096)

    # Anthropic
    anthropic_api_keys: str = Field(default="")
    chat_models: str = Field(default="sonnet,haiku")
    max_output_tokens: int = Field(default=2048)
    max_tool_rounds: int = Field(default=3)

    # Conversation memory
    history_max_turns: int = Field(default=20)
    context_max_age_days: int = Field(default=30)
    reclaim_interval_hours: int = Field(default=24)

    # Brave Search (web research)
    brave_search_api_key: str = Field(default="")

    # YouTube Data API
    youtube_api_key: str = Field(default="")

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    def get_anthropic_api_keys(self) -> list[str]:
        """Parse ANTHROPIC_API_KEYS, keeping at most the first five."""
        return _split_csv(self.anthropic_api_keys)[:MAX_BACKEND_KEYS]

    def get_chat_models(self) -> list[str]:
        """Parse CHAT_MODELS into an ordered list of model tiers."""
        return _split_csv(self.chat_models)

    def get_admin_user_ids(self) -> set[int]:
        """Parse ADMIN_USER_IDS into a set of ints."""
        return {int(uid) for uid in _split_csv(self.admin_user_ids)}

    def validate_required(self) -> list[str]:
        """Return the names of missing settings the bot cannot start without."""
        missing = []
        if not self.telegram_bot_token:
            missing.append("TELEGRAM_BOT_TOKEN")
        if not self.get_anthropic_api_keys():
            missing.append("ANTHROPIC_API_KEYS")
        return missing


settings = Settings()
