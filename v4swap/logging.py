"""
Logging configuration for the v4swap service.

Everything goes through loguru. Swap progress records are bound with
``SWAP_PROGRESS=True`` and an ``attempt_id`` so they can be routed to their
own file and, optionally, mirrored to a capped Redis list.
"""
from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Any, Dict

from loguru import logger
from redis import Redis

# Lazy import settings to avoid circular dependency
_settings = None

_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"
_PROGRESS_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[attempt_id]} | {message}"
_CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
_FALLBACK_DIR = Path("/tmp/v4swap_logs")


def _get_settings():
    global _settings
    if _settings is None:
        from v4swap.settings.config import settings as app_settings

        _settings = app_settings
    return _settings


def is_swap_progress(record: Dict[str, Any]) -> bool:
    extra = record["extra"]
    return bool(extra.get("SWAP_PROGRESS")) and "attempt_id" in extra


def _log_dir(log_file: Path) -> Path:
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        return log_file.parent
    except OSError:
        fallback = Path.cwd() / "logs"
        fallback.mkdir(parents=True, exist_ok=True)
        return fallback


def _add_file_sink(path: Path, **kwargs: Any) -> None:
    """Add a file sink, falling back to a temp directory on permission errors."""
    try:
        logger.add(str(path), **kwargs)
    except PermissionError:
        _FALLBACK_DIR.mkdir(parents=True, exist_ok=True)
        logger.add(str(_FALLBACK_DIR / path.name), **kwargs)


class RedisLogSink:
    """Loguru sink mirroring records into a capped Redis list.

    Swap progress records carry their attempt id at the top level of the
    JSON entry so a reader can filter one attempt without parsing ``extra``.
    """

    def __init__(self, key: str, max_entries: int, client: Redis | None = None) -> None:
        self.key = key
        self.max_entries = max_entries
        self._available = False
        try:
            if client is None:
                settings = _get_settings()
                client = Redis(
                    host=settings.redis_host,
                    port=settings.redis_port,
                    db=settings.redis_db,
                    decode_responses=True,
                )
            client.ping()
        except Exception as exc:
            logger.warning(f"Redis log sink unavailable: {exc}")
            return
        self.client = client
        self._available = True

    @staticmethod
    def to_entry(record: Dict[str, Any]) -> Dict[str, Any]:
        extra = dict(record.get("extra", {}))
        entry: Dict[str, Any] = {
            "timestamp": record["time"].isoformat(),
            "level": record["level"].name,
            "message": record["message"],
            "source": f"{record['name']}:{record['function']}:{record['line']}",
            "extra": extra,
        }
        if is_swap_progress(record):
            entry["attempt_id"] = extra["attempt_id"]
        return entry

    def write(self, message: Any) -> None:
        if not self._available:
            return
        try:
            self.client.rpush(self.key, json.dumps(self.to_entry(message.record), default=str))
            self.client.ltrim(self.key, -self.max_entries, -1)
        except Exception as exc:
            # Debug only: a warning here would be mirrored back into this sink
            logger.debug(f"Failed to push log entry to Redis: {exc}")


def setup_logging():
    """Configure console, file, error and swap-progress sinks."""
    settings = _get_settings()

    logger.remove()
    logger.configure(extra={"app": settings.app_name, "environment": settings.environment})

    level = (os.getenv("LOG_LEVEL") or settings.log_level or "INFO").upper()
    logger.add(sys.stdout, format=_CONSOLE_FORMAT, level=level, colorize=True)

    log_file = Path(settings.log_file)
    log_dir = _log_dir(log_file)
    _add_file_sink(
        log_dir / log_file.name,
        format=_FILE_FORMAT,
        level="DEBUG",
        rotation="100 MB",
        retention="30 days",
        compression="zip",
    )
    _add_file_sink(
        log_dir / "errors.log",
        format=_FILE_FORMAT,
        level="ERROR",
        rotation="50 MB",
        retention="90 days",
        compression="zip",
    )
    _add_file_sink(
        log_dir / "swap_progress.log",
        format=_PROGRESS_FORMAT,
        level="INFO",
        filter=is_swap_progress,
        rotation="50 MB",
        retention="365 days",
        compression="zip",
    )

    if settings.log_redis_enabled:
        sink = RedisLogSink(settings.log_redis_list_key, settings.log_redis_max_entries)
        logger.add(sink.write, level=level)

    return logger


_log = None


def _get_log():
    global _log
    if _log is None:
        try:
            _log = setup_logging()
        except Exception as exc:
            # Keep loguru's default stderr sink
            logger.warning(f"Logging setup failed, using default sink: {exc}")
            _log = logger
    return _log


log = _get_log()
