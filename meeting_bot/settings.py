# FilePath: "/meeting_bot/settings.py"
# Project: Meeting Bot Fleet (MBF)
# Description: Configuration loading for one bot process (environment / .env).
# Author: "MBF Maintainers"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import uuid
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import List, Tuple
from urllib.parse import urlparse

from pydantic import field_validator
from pydantic_settings import BaseSettings


def is_url(value: str) -> bool:
    parsed = urlparse(value)
    return bool(parsed.scheme) and bool(parsed.netloc)


def split_notifier_urls(raw: str) -> List[str]:
    """Splits a comma-separated destination list, dropping blanks."""
    return [url.strip() for url in raw.split(",") if url.strip()]


@dataclass(frozen=True)
class BotConfig:
    """Fully resolved, immutable configuration handed to the Orchestrator."""
    bot_id: str
    meeting_url: str
    notifier_urls: Tuple[str, ...] = ()
    bot_name: str = "MeetingBot"
    output_dir: Path = Path("output")
    headless: bool = True

    # Timeout policy (seconds)
    lobby_wait_seconds: float = 10
    in_call_wait_seconds: float = 15
    admission_timeout_seconds: float = 300
    leave_wait_seconds: float = 10

    caption_poll_interval: float = 0.5


class BotSettings(BaseSettings):
    """Configuration for a bot process."""

    # Identity & target
    MEETING_URL: str
    BOT_ID: str
    NOTIFIER_URLS: str = ""
    BOT_NAME: str = "MeetingBot"

    # Server (/captions, health, metrics)
    HTTP_HOST: str = "0.0.0.0"
    PORT: int = 4101

    # Browser
    HEADLESS: bool = True

    # Timeouts (seconds)
    LOBBY_WAIT_SECONDS: float = 10
    IN_CALL_WAIT_SECONDS: float = 15
    ADMISSION_TIMEOUT_SECONDS: float = 300
    LEAVE_WAIT_SECONDS: float = 10
    CAPTION_POLL_INTERVAL: float = 0.5

    # Output
    OUTPUT_DIR: Path = Path("output")
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @field_validator("MEETING_URL")
    @classmethod
    def _check_meeting_url(cls, value: str) -> str:
        if not is_url(value):
            raise ValueError(f"MEETING_URL is not a valid URL: {value!r}")
        return value

    @field_validator("BOT_ID")
    @classmethod
    def _check_bot_id(cls, value: str) -> str:
        try:
            return str(uuid.UUID(value))
        except ValueError:
            raise ValueError(f"BOT_ID must be a UUID: {value!r}")

    @field_validator("NOTIFIER_URLS")
    @classmethod
    def _check_notifier_urls(cls, value: str) -> str:
        for url in split_notifier_urls(value):
            if not is_url(url):
                raise ValueError(f"NOTIFIER_URLS contains an invalid URL: {url!r}")
        return value

    @field_validator("LOG_FORMAT")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        if value not in ("text", "json"):
            raise ValueError("LOG_FORMAT must be 'text' or 'json'")
        return value

    @property
    def notifier_urls(self) -> List[str]:
        return split_notifier_urls(self.NOTIFIER_URLS)

    def to_config(self) -> BotConfig:
        return BotConfig(
            bot_id=self.BOT_ID,
            meeting_url=self.MEETING_URL,
            notifier_urls=tuple(self.notifier_urls),
            bot_name=self.BOT_NAME,
            output_dir=self.OUTPUT_DIR,
            headless=self.HEADLESS,
            lobby_wait_seconds=self.LOBBY_WAIT_SECONDS,
            in_call_wait_seconds=self.IN_CALL_WAIT_SECONDS,
            admission_timeout_seconds=self.ADMISSION_TIMEOUT_SECONDS,
            leave_wait_seconds=self.LEAVE_WAIT_SECONDS,
            caption_poll_interval=self.CAPTION_POLL_INTERVAL,
        )


@lru_cache()
def get_settings() -> BotSettings:
    """Returns a cached instance of the settings."""
    return BotSettings()
