"""Structured logging for termreel.

Records are written under the ``termreel`` logger in one of two formats:

- text: ``2026-10-19 10:30:45 | INFO     | termreel.supervisor | Playback finished [frames=240]``
- json: one object per line with timestamp, level, component, message and
  any keyword fields passed to the logger

Frames own the terminal during playback, so the console only shows
warnings by default. With ``--log-file`` the console is reduced to errors
and the full trace goes to a rotating file. Individual loggers can be made
more or less verbose with ``--log-component NAME=LEVEL``, where ``NAME`` is
the logger name below ``termreel`` (``supervisor``, ``playback.reader``).

Example usage:
    >>> configure_logging(LogConfig(log_file="./termreel.log", component_levels={"supervisor": "DEBUG"}))
    >>> get_logger("supervisor").debug("State change", state="running")
"""

import argparse
import json
import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Sequence, Tuple

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["text", "json"]

ROOT_LOGGER_NAME = "termreel"
VALID_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

_ADAPTER_KWARGS = ("exc_info", "stack_info", "stacklevel", "extra")


def _check_level(level: str, what: str) -> str:
    if level.upper() not in VALID_LEVELS:
        raise ValueError(f"Invalid {what} '{level}'. Must be one of: {sorted(VALID_LEVELS)}")
    return level.upper()


@dataclass
class LogConfig:
    """Logging options, normally built from the command line.

    Attributes:
        log_level: Level of the ``termreel`` logger
        log_format: 'text' or 'json'
        log_file: Rotating log file; when set the console only shows errors
        component_levels: Per-logger overrides, keyed by the name below ``termreel``
        max_file_size_mb: Size at which the log file rotates
        backup_count: Rotated files to keep
        include_timestamp: Prefix text lines with the time
        include_source: Append file and line of the call site
    """

    log_level: LogLevel = "WARNING"
    log_format: LogFormat = "text"
    log_file: Optional[str] = None
    component_levels: Dict[str, LogLevel] = field(default_factory=dict)
    max_file_size_mb: int = 10
    backup_count: int = 3
    include_timestamp: bool = True
    include_source: bool = False

    def __post_init__(self) -> None:
        self.log_level = _check_level(self.log_level, "log_level")
        if self.log_format not in ("text", "json"):
            raise ValueError(f"Invalid log_format '{self.log_format}'. Must be 'text' or 'json'")
        self.component_levels = {
            component: _check_level(level, f"log level for component '{component}'")
            for component, level in self.component_levels.items()
        }

    @property
    def lowest_level(self) -> int:
        """Most verbose level any logger is configured for."""
        levels = [self.log_level, *self.component_levels.values()]
        return min(getattr(logging, level) for level in levels)


class JSONFormatter(logging.Formatter):
    """One JSON object per record; keyword fields become top-level keys."""

    def __init__(self, include_source: bool = False) -> None:
        super().__init__()
        self.include_source = include_source

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, timezone.utc)
        entry: Dict[str, Any] = {
            "timestamp": timestamp.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "component": record.name.split(".")[-1],
            "message": record.getMessage(),
        }
        if self.include_source:
            entry["source"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }
        entry.update(getattr(record, "extra_fields", None) or {})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Pipe-separated lines with keyword fields as a ``[k=v, ...]`` suffix."""

    def __init__(self, include_timestamp: bool = True, include_source: bool = False) -> None:
        fmt = "%(levelname)-8s | %(name)-12s | %(message)s"
        if include_timestamp:
            fmt = "%(asctime)s | " + fmt
        super().__init__(fmt=fmt, datefmt="%Y-%m-%d %H:%M:%S")
        self.include_source = include_source

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            message += " [" + ", ".join(f"{k}={v}" for k, v in extra_fields.items()) + "]"
        if self.include_source:
            message += f" ({record.filename}:{record.lineno})"
        return message


class TermreelLogger(logging.LoggerAdapter):
    """Logger adapter that records keyword arguments as structured fields.

    ``logger.info("Launched renderer", pid=1234)`` stores ``pid`` on the
    record; the formatters render it.
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
        fields = {key: kwargs.pop(key) for key in list(kwargs) if key not in _ADAPTER_KWARGS}
        if self.extra:
            fields.update(self.extra)
        kwargs.setdefault("extra", {})["extra_fields"] = fields
        return msg, kwargs


_adapters: Dict[str, TermreelLogger] = {}
_component_loggers: List[str] = []


def configure_logging(config: Optional[LogConfig] = None) -> None:
    """Install handlers on the ``termreel`` logger, replacing earlier ones."""
    config = config or LogConfig()
    level = getattr(logging, config.log_level)

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)
    root_logger.propagate = False
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    # Undo overrides from an earlier configuration
    while _component_loggers:
        logging.getLogger(_component_loggers.pop()).setLevel(logging.NOTSET)

    if config.log_format == "json":
        formatter: logging.Formatter = JSONFormatter(include_source=config.include_source)
    else:
        formatter = TextFormatter(config.include_timestamp, config.include_source)

    # Handlers pass anything a component override lets through
    handler_level = config.lowest_level

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(logging.ERROR if config.log_file else handler_level)
    root_logger.addHandler(console_handler)

    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=config.max_file_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(handler_level)
        root_logger.addHandler(file_handler)

    for component, component_level in config.component_levels.items():
        name = f"{ROOT_LOGGER_NAME}.{component}"
        logging.getLogger(name).setLevel(getattr(logging, component_level))
        _component_loggers.append(name)


def get_logger(component: str) -> TermreelLogger:
    """Adapter for the ``termreel.<component>`` logger, cached per component."""
    if component not in _adapters:
        _adapters[component] = TermreelLogger(logging.getLogger(f"{ROOT_LOGGER_NAME}.{component}"), {})
    return _adapters[component]


def parse_component_level(value: str) -> Tuple[str, str]:
    """argparse type for ``NAME=LEVEL``."""
    component, sep, level = value.partition("=")
    component = component.strip().strip(".")
    if not sep or not component or level.strip().upper() not in VALID_LEVELS:
        raise argparse.ArgumentTypeError(
            f"expected NAME=LEVEL with LEVEL one of {sorted(VALID_LEVELS)}, got '{value}'"
        )
    return component, level.strip().upper()


def configure_from_cli(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    log_file: Optional[str] = None,
    log_components: Optional[Sequence[Tuple[str, str]]] = None,
) -> LogConfig:
    """Build a LogConfig from parsed flags and apply it."""
    config = LogConfig(
        log_level=log_level or "WARNING",
        log_format=log_format if log_format in ("text", "json") else "text",
        log_file=log_file,
        component_levels=dict(log_components or ()),
    )
    configure_logging(config)
    return config


def get_cli_args_parser() -> List[Tuple[Tuple[str, ...], Dict[str, Any]]]:
    """Arguments for argparse.add_argument() covering the logging flags."""
    return [
        (
            ("--log-level",),
            {
                "type": str.upper,
                "choices": sorted(VALID_LEVELS),
                "default": "WARNING",
                "help": "Set logging level (default: WARNING)",
            },
        ),
        (
            ("--log-format",),
            {
                "type": str,
                "choices": ["text", "json"],
                "default": "text",
                "help": "Set logging format (default: text)",
            },
        ),
        (
            ("--log-file",),
            {
                "type": str,
                "default": None,
                "help": "Write logs to this file; stderr then only shows errors",
            },
        ),
        (
            ("--log-component",),
            {
                "type": parse_component_level,
                "action": "append",
                "default": None,
                "metavar": "NAME=LEVEL",
                "help": "Level for one logger below 'termreel', e.g. playback.reader=DEBUG (repeatable)",
            },
        ),
    ]
