"""
Centralized logging configuration for ChatDesk.

Console output is colored and human-readable; the optional file output is a
rotating JSON log. Structured fields travel on the record as
``extra={"extra_fields": {...}}``.
"""

import copy
import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

SENSITIVE_KEYS = ['password', 'token', 'secret', 'authorization', 'api_key', 'api-key', 'x-api-key']


class ColoredFormatter(logging.Formatter):
    """Formatter adding ANSI colors to the level name."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m',
    }

    def format(self, record: logging.LogRecord) -> str:
        # Work on a copy: the same record is handed to the JSON file handler.
        record = copy.copy(record)
        level_color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        record.levelname = f"{level_color}{record.levelname:8s}{self.COLORS['RESET']}"
        return super().format(record)


class JSONFormatter(logging.Formatter):
    """Formatter emitting one JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }

        if hasattr(record, 'extra_fields'):
            log_data.update(filter_sensitive_data(record.extra_fields))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


def setup_logging(config: Any) -> None:
    """
    Configure the root logger from a Settings object.

    Args:
        config: Settings object with the log_* fields
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    log_level = getattr(logging, config.log_level.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    if config.log_console_enabled:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(ColoredFormatter(
            "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))
        root_logger.addHandler(console_handler)

    if config.log_file_enabled:
        log_path = Path(config.log_file_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        # 10 MB per file, keep 5 backups
        file_handler = logging.handlers.RotatingFileHandler(
            filename=config.log_file_path,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setLevel(log_level)

        if config.log_json_format:
            file_formatter = JSONFormatter()
        else:
            file_formatter = logging.Formatter(
                "%(asctime)s | %(levelname)s | %(name)s:%(funcName)s:%(lineno)d | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S"
            )

        file_handler.setFormatter(file_formatter)
        root_logger.addHandler(file_handler)

    # Request/response bodies of the SDK and httpx would leak conversation text at DEBUG
    for noisy in ("httpx", "httpcore", "anthropic", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    root_logger.info(
        f"Logging initialized: level={config.log_level.upper()}, "
        f"console={config.log_console_enabled}, "
        f"file={config.log_file_enabled}"
    )


def filter_sensitive_data(data: Any, sensitive_keys: Optional[list] = None) -> Any:
    """
    Mask values stored under sensitive keys, recursing into dicts and lists.

    Returns:
        Filtered data with sensitive values replaced by "***FILTERED***"
    """
    if sensitive_keys is None:
        sensitive_keys = SENSITIVE_KEYS

    if isinstance(data, dict):
        return {
            key: "***FILTERED***" if any(sensitive in str(key).lower() for sensitive in sensitive_keys)
            else filter_sensitive_data(value, sensitive_keys)
            for key, value in data.items()
        }
    elif isinstance(data, list):
        return [filter_sensitive_data(item, sensitive_keys) for item in data]
    else:
        return data



def mask_secret(secret: Optional[str]) -> str:
    """Render a credential for logs as its last four characters."""
    if not secret:
        return "<unset>"
    if len(secret) <= 8:
        return "***"
    return f"***{secret[-4:]}"
