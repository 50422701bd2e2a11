"""
Logging setup for SynthVerify processes.

Configures the root logger from settings: console output split between
stdout and stderr by level, plus an optional rotating log file per
process context (``api``, ``cli``).
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from typing import Optional

from synthverify.config import Settings, settings

STANDARD_FORMAT = "[%(asctime)s] [%(name)s] [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured_contexts: set[str] = set()


class JsonFormatter(logging.Formatter):
    """Render log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


class _MaxLevelFilter(logging.Filter):
    """Only pass records strictly below a level (keeps stdout free of errors)."""

    def __init__(self, max_level: int):
        super().__init__()
        self.max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.max_level


def _build_formatter(config: Settings) -> logging.Formatter:
    if config.log_format == "json":
        return JsonFormatter()
    return logging.Formatter(fmt=STANDARD_FORMAT, datefmt=DATE_FORMAT)


def setup_logging(context: str = "app", config: Optional[Settings] = None) -> None:
    """
    Configure logging for a process context.

    Safe to call more than once; each context is configured only once.
    When the log directory cannot be created or opened, file logging is
    skipped and a warning goes to the console handlers.

    Args:
        context: Name of the process context, used for the log file name
        config: Settings to read from (defaults to global settings)
    """
    config = config or settings
    if context in _configured_contexts:
        return

    root = logging.getLogger()
    root.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))
    formatter = _build_formatter(config)

    if config.log_console_enabled:
        if config.log_to_stdout:
            stdout_handler = logging.StreamHandler(sys.stdout)
            stdout_handler.setLevel(logging.DEBUG)
            stdout_handler.addFilter(_MaxLevelFilter(logging.WARNING))
            stdout_handler.setFormatter(formatter)
            root.addHandler(stdout_handler)
        if config.log_to_stderr:
            stderr_handler = logging.StreamHandler(sys.stderr)
            stderr_handler.setLevel(logging.WARNING)
            stderr_handler.setFormatter(formatter)
            root.addHandler(stderr_handler)

    if config.log_file_enabled:
        log_dir = config.log_directory
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_dir / f"{context}.log",
                maxBytes=config.log_max_bytes,
                backupCount=config.log_backup_count,
                encoding="utf-8",
            )
        except OSError as e:
            logging.getLogger(__name__).warning(
                f"File logging disabled, cannot write to {log_dir}: {e}"
            )
        else:
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

    _configured_contexts.add(context)
    logging.getLogger(__name__).debug(f"Logging configured for context: {context}")
