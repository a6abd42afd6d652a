"""Centralized logging configuration for the billing engine."""

import json
import logging
import logging.handlers
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from billing_engine.config.settings import BillingSystemConfig

# Attributes every LogRecord carries; anything else came from extra= or LogContext.
_STANDARD_RECORD_FIELDS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime", "taskName"}

STANDARD_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


class JSONFormatter(logging.Formatter):
    """Render log records as one JSON object per line.

    Structured fields (project_id, contract_id, correlation_id, ...) attached
    through ``extra=`` or LogContext are emitted as top-level keys. Values that
    JSON cannot encode natively, such as Decimal amounts and dates, are
    rendered with ``str``.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _STANDARD_RECORD_FIELDS or key.startswith("_"):
                continue
            payload[key] = value

        return json.dumps(payload, default=str)


class LoggingConfig:
    """
    Logging settings for the engine and CLI.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: 'standard' or 'json'
        log_file: Path of the rotating log file, if file logging is enabled
        enable_console: Log to stderr
        enable_file: Log to ``log_file``
        max_file_size: Rotation threshold in bytes
        backup_count: Rotated files to keep
    """

    VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
    VALID_FORMATS = ("standard", "json")

    def __init__(
        self,
        log_level: str = "INFO",
        log_format: str = "standard",
        log_file: Optional[str] = None,
        enable_console: bool = True,
        enable_file: bool = False,
        max_file_size: int = 10 * 1024 * 1024,
        backup_count: int = 5,
    ):
        level = log_level.upper()
        if level not in self.VALID_LEVELS:
            raise ValueError(
                f"Invalid log level: {log_level}. "
                f"Must be one of {', '.join(self.VALID_LEVELS)}"
            )
        if log_format not in self.VALID_FORMATS:
            raise ValueError(
                f"Invalid log format: {log_format}. "
                f"Must be one of {', '.join(self.VALID_FORMATS)}"
            )
        if enable_file and not log_file:
            raise ValueError("log_file must be specified when enable_file is True")

        self.log_level = level
        self.log_format = log_format
        self.log_file = log_file
        self.enable_console = enable_console
        self.enable_file = enable_file
        self.max_file_size = max_file_size
        self.backup_count = backup_count

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        """
        Create configuration from environment variables.

        Environment Variables:
            LOG_LEVEL: Log level (default: INFO)
            LOG_FORMAT: Log format (default: standard)
            LOG_FILE: Log file path (default: None)
            LOG_CONSOLE: Enable console output (default: true)
            LOG_FILE_ENABLED: Enable file output (default: false)
            LOG_MAX_FILE_SIZE: Max file size in bytes (default: 10485760)
            LOG_BACKUP_COUNT: Backup file count (default: 5)
        """
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "standard"),
            log_file=os.getenv("LOG_FILE"),
            enable_console=_env_flag("LOG_CONSOLE", True),
            enable_file=_env_flag("LOG_FILE_ENABLED", False),
            max_file_size=int(os.getenv("LOG_MAX_FILE_SIZE", str(10 * 1024 * 1024))),
            backup_count=int(os.getenv("LOG_BACKUP_COUNT", "5")),
        )

    @classmethod
    def from_settings(
        cls, settings: "BillingSystemConfig", **overrides: Any
    ) -> "LoggingConfig":
        """Create configuration from application settings.

        DEBUG mode forces the DEBUG level; remaining values come from the
        LOG_* environment variables.
        """
        base = cls.from_env()
        values = {
            "log_level": "DEBUG" if settings.debug else settings.log_level,
            "log_format": base.log_format,
            "log_file": base.log_file,
            "enable_console": base.enable_console,
            "enable_file": base.enable_file,
            "max_file_size": base.max_file_size,
            "backup_count": base.backup_count,
        }
        values.update(overrides)
        return cls(**values)


def _env_flag(name: str, default: bool) -> bool:
    return os.getenv(name, "true" if default else "false").strip().lower() in (
        "1",
        "true",
        "yes",
    )


def configure_logging(config: LoggingConfig) -> None:
    """
    Install handlers on the root logger according to ``config``.

    Existing root handlers are removed first, so calling this twice does not
    duplicate output. Every handler carries the LogContext filter.
    """
    from billing_engine.utils.logging_utils import _ContextFilter

    reset_logging()

    root_logger = logging.getLogger()
    level = getattr(logging, config.log_level)
    root_logger.setLevel(level)

    if config.log_format == "json":
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(fmt=STANDARD_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    handlers = []
    if config.enable_console:
        handlers.append(logging.StreamHandler())

    if config.enable_file and config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                filename=str(log_path),
                maxBytes=config.max_file_size,
                backupCount=config.backup_count,
            )
        )

    context_filter = _ContextFilter()
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)
        root_logger.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Return the module logger for ``name`` (typically ``__name__``)."""
    return logging.getLogger(name)


def reset_logging() -> None:
    """Remove all root handlers and restore the WARNING level."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(logging.WARNING)
