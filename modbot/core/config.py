from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import SecretStr, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

BUNDLED_MODULES_DIR = Path(__file__).resolve().parent.parent / "modules"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    bot_token: SecretStr = Field(alias="BOT_TOKEN")
    # comma separated, every token runs as its own connection on the shared dispatcher
    extra_bot_tokens: str = Field(default="", alias="EXTRA_BOT_TOKENS")
    bot_mode: Literal["polling", "webhook"] = Field(default="polling", alias="BOT_MODE")

    webhook_url: str = Field(default="", alias="WEBHOOK_URL")
    webhook_host: str = Field(default="0.0.0.0", alias="WEBHOOK_HOST")
    webhook_port: int = Field(default=8080, alias="WEBHOOK_PORT")
    webhook_path: str = Field(default="/webhook", alias="WEBHOOK_PATH")

    database_url: str = Field(default="sqlite+aiosqlite:///./data/modbot.db", alias="DATABASE_URL")

    runtime_settings_path: Path = Field(default=Path("json/settings.json"), alias="RUNTIME_SETTINGS_PATH")
    commands_dir: Path = Field(default=BUNDLED_MODULES_DIR / "commands", alias="COMMANDS_DIR")
    events_dir: Path = Field(default=BUNDLED_MODULES_DIR / "events", alias="EVENTS_DIR")

    callback_session_ttl_seconds: int = Field(default=3600, alias="CALLBACK_SESSION_TTL_SECONDS")
    callback_session_capacity: int = Field(default=5000, alias="CALLBACK_SESSION_CAPACITY")
    reply_session_ttl_seconds: int = Field(default=1800, alias="REPLY_SESSION_TTL_SECONDS")
    reply_session_capacity: int = Field(default=5000, alias="REPLY_SESSION_CAPACITY")

    module_fetch_timeout_seconds: float = Field(default=15.0, alias="MODULE_FETCH_TIMEOUT_SECONDS")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=True, alias="LOG_JSON")

    def all_bot_tokens(self) -> list[str]:
        tokens = [self.bot_token.get_secret_value()]
        for raw in self.extra_bot_tokens.split(","):
            token = raw.strip()
            if token and token not in tokens:
                tokens.append(token)
        return tokens
