# FilePath: "/meeting_bot/sinks.py"
# Project: Meeting Bot Fleet (MBF)
# Description: Logging setup plus the append-only log and transcript files of a bot instance.
#              File naming: <OUTPUT_DIR>/<kind>/<timestamp_opened>-<botId>.<ext>
# Author: "MBF Maintainers"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, TextIO, Union

ROOT_LOGGER = "meeting_bot"
TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


class JsonFormatter(logging.Formatter):
    """Formats logs as JSON for better machine reading (Splunk/ELK)."""

    def __init__(self, service: str = "meeting_bot"):
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": record.created,
            "level": record.levelname,
            "service": self.service,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in ("bot_id", "source"):
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging(level: str = "INFO", log_format: str = "text", service: str = "meeting_bot") -> None:
    """Process-wide console logging. Call once at process entry."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=TEXT_FORMAT)
    if log_format == "json":
        for handler in logging.getLogger().handlers:
            handler.setFormatter(JsonFormatter(service))


class BotLoggerAdapter(logging.LoggerAdapter):
    """Prefixes messages with the bot id and source and attaches both as record attributes."""

    def process(self, msg, kwargs):
        extra = dict(self.extra)
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return f"[botId={self.extra['bot_id']}, source={self.extra['source']}] {msg}", kwargs


def get_bot_logger(source: str, bot_id: str) -> BotLoggerAdapter:
    return BotLoggerAdapter(logging.getLogger(f"{ROOT_LOGGER}.{source}"), {"bot_id": bot_id, "source": source})


def artifact_path(output_dir: Path, kind: str, bot_id: str, created_at: datetime, ext: str) -> Path:
    stamp = created_at.strftime("%Y-%m-%dT%H-%M-%S")
    return Path(output_dir) / kind / f"{stamp}-{bot_id}.{ext}"


class AppendOnlyFile:
    """Text file opened lazily in append mode; parent directories are created on first write."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._stream: Optional[TextIO] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, data: Union[str, Dict[str, Any], list]) -> None:
        if self._closed:
            raise ValueError(f"Sink {self.path} is closed")
        if self._stream is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._stream = open(self.path, "a", encoding="utf-8")

        line = data if isinstance(data, str) else json.dumps(data)
        self._stream.write(f"{line}\n")
        self._stream.flush()

    def close(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None
        self._closed = True


class TranscriptSink(AppendOnlyFile):
    """One line per finalized caption."""

    def __init__(self, bot_id: str, output_dir: Path, created_at: Optional[datetime] = None):
        created_at = created_at or datetime.now(timezone.utc)
        super().__init__(artifact_path(output_dir, "transcripts", bot_id, created_at, "txt"))
        self.bot_id = bot_id


class _BotRecordFilter(logging.Filter):
    def __init__(self, bot_id: str):
        super().__init__()
        self.bot_id = bot_id

    def filter(self, record: logging.LogRecord) -> bool:
        return getattr(record, "bot_id", None) == self.bot_id


class _LazyFileHandler(logging.FileHandler):
    """FileHandler that creates the parent directory when the file is first opened."""

    def _open(self):
        Path(self.baseFilename).parent.mkdir(parents=True, exist_ok=True)
        return super()._open()


class LogSink:
    """
    Per-bot log file.

    Attaches a file handler to the ``meeting_bot`` logger that keeps only the
    records carrying this bot's id (see ``get_bot_logger``).
    """

    def __init__(
        self,
        bot_id: str,
        output_dir: Path,
        created_at: Optional[datetime] = None,
        log_format: str = "text",
        level: int = logging.INFO,
    ):
        created_at = created_at or datetime.now(timezone.utc)
        self.bot_id = bot_id
        self.level = level
        self.path = artifact_path(output_dir, "logs", bot_id, created_at, "log")

        self._handler = _LazyFileHandler(self.path, mode="a", encoding="utf-8", delay=True)
        self._handler.setLevel(level)
        self._handler.addFilter(_BotRecordFilter(bot_id))
        self._handler.setFormatter(JsonFormatter() if log_format == "json" else logging.Formatter(TEXT_FORMAT))
        self._attached = False

    def attach(self) -> "LogSink":
        if not self._attached:
            root = logging.getLogger(ROOT_LOGGER)
            # Records below the logger's effective level never reach this handler
            if root.getEffectiveLevel() > self.level:
                root.setLevel(self.level)
            root.addHandler(self._handler)
            self._attached = True
        return self

    def close(self) -> None:
        if self._attached:
            logging.getLogger(ROOT_LOGGER).removeHandler(self._handler)
            self._attached = False
        self._handler.close()
