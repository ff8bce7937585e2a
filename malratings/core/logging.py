"""Structured JSON-lines logging with rotation."""

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

DEFAULT_LOG_DIR = Path.home() / ".local" / "share" / "malratings" / "logs"


class StructuredLogger:
    """Structured logger writing one JSON object per line."""

    def __init__(self, name: str, log_dir: Path, level: int = logging.DEBUG):
        self.logger = logging.getLogger(f"malratings.{name}")
        self.logger.setLevel(level)
        self.logger.propagate = False
        for handler in self.logger.handlers:
            handler.close()
        self.logger.handlers.clear()  # Prevent duplicate handlers

        log_dir.mkdir(parents=True, exist_ok=True)

        # Rotating file handler (10MB, 7 backups)
        log_file = log_dir / f"{name}.jsonl"
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=7,
            encoding="utf-8",
        )
        file_handler.setFormatter(self._json_formatter())
        self.logger.addHandler(file_handler)

        # Console for errors only
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(logging.ERROR)
        console.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        self.logger.addHandler(console)

    def _json_formatter(self) -> logging.Formatter:
        class JSONFormatter(logging.Formatter):
            def format(self, record: logging.LogRecord) -> str:
                data: dict[str, Any] = {
                    "ts": datetime.now(timezone.utc).isoformat(),
                    "level": record.levelname,
                    "logger": record.name,
                    "msg": record.getMessage(),
                    "module": record.module,
                    "func": record.funcName,
                    "line": record.lineno,
                }
                if hasattr(record, "extra_data"):
                    data.update(record.extra_data)
                if record.exc_info:
                    data["exc"] = self.formatException(record.exc_info)
                return json.dumps(data, default=str)

        return JSONFormatter()

    def info(self, msg: str, **kwargs: Any) -> None:
        self.logger.info(msg, extra={"extra_data": kwargs}, stacklevel=2)

    def error(self, msg: str, exc_info: bool = False, **kwargs: Any) -> None:
        self.logger.error(
            msg, exc_info=exc_info, extra={"extra_data": kwargs}, stacklevel=2
        )

    def warning(self, msg: str, **kwargs: Any) -> None:
        self.logger.warning(msg, extra={"extra_data": kwargs}, stacklevel=2)

    def debug(self, msg: str, **kwargs: Any) -> None:
        self.logger.debug(msg, extra={"extra_data": kwargs}, stacklevel=2)


_loggers: dict[str, StructuredLogger] = {}
_log_dir: Path | None = None


def configure_log_directory(log_dir: Path) -> None:
    """Send every logger (existing and future) to ``log_dir``."""
    global _log_dir
    if log_dir == (_log_dir or DEFAULT_LOG_DIR):
        return
    _log_dir = log_dir
    for name in list(_loggers):
        _loggers[name] = StructuredLogger(name, log_dir)


def get_logger(name: str, log_dir: Path | None = None) -> StructuredLogger:
    """Get or create logger."""
    if name not in _loggers:
        if log_dir is None:
            log_dir = _log_dir or DEFAULT_LOG_DIR
        _loggers[name] = StructuredLogger(name, log_dir)
    return _loggers[name]
