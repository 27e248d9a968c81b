# FilePath: "/bot_launcher/settings.py"
# Project: Meeting Bot Fleet (MBF)
# Description: Loads launcher configuration from the environment / .env file using Pydantic.
# Author: "MBF Maintainers"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

from functools import lru_cache

from pydantic_settings import BaseSettings


class LauncherSettings(BaseSettings):
    """Launcher settings loaded from environment variables."""

    # App Config
    APP_NAME: str = "MBF Bot Launcher"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 4100

    # Bot containers
    BOT_IMAGE: str = "teams-bot:latest"
    DOCKER_NETWORK: str = "client-dev-network"
    CONTAINER_PREFIX: str = "teams-bot"
    BOT_ENV: str = "production"

    # Port range handed out to bots
    BOT_PORT_RANGE_START: int = 4100
    BOT_PORT_RANGE_END: int = 4199

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> LauncherSettings:
    """Returns a cached instance of the settings."""
    return LauncherSettings()
