"""structlog over stdlib logging.

structlog events and foreign stdlib records (uvicorn, httpx) share one
renderer: console in dev/test, JSON in prod. Emission runs on a
QueueListener thread; the event loop only enqueues records.
"""

from __future__ import annotations

import atexit
import copy
import logging
import logging.config
import queue
import sys
from datetime import datetime, timezone
from logging.handlers import QueueHandler, QueueListener
from typing import Any, Optional

import structlog

from fluxplay.infrastructure.config.schema import AppConfig

log = structlog.get_logger(__name__)

# Loggers held at a fixed level whatever log_level says.
_PINNED_LEVELS: dict[str, str] = {"httpx": "WARNING", "httpcore": "WARNING"}

_listener: Optional[QueueListener] = None


def _drop_color_message(_: Any, __: Any, event_dict: dict[str, Any]) -> dict[str, Any]:
    # Uvicorn duplicates the message as "color_message".
    event_dict.pop("color_message", None)
    return event_dict


def _stamp_record_time(_: Any, __: Any, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Use LogRecord.created, not the time the listener formats the record."""
    record = event_dict.get("_record")
    if isinstance(record, logging.LogRecord):
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        event_dict["timestamp"] = created.isoformat().replace("+00:00", "Z")
    return event_dict


def _renderer(config: AppConfig) -> structlog.typing.Processor:
    if config.log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def _foreign_pre_chain() -> list[structlog.typing.Processor]:
    return [
        _drop_color_message,
        structlog.contextvars.merge_contextvars,
        _stamp_record_time,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
    ]


def _render_processors(config: AppConfig) -> list[structlog.typing.Processor]:
    return [
        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
        _renderer(config),
    ]


def build_logging_config(config: AppConfig) -> dict[str, Any]:
    """dictConfig for ``uvicorn.run(log_config=...)``.

    Uvicorn loggers follow ``config.log_level``; ``_PINNED_LEVELS`` win
    over it.
    """
    level = config.log_level

    def stream_handler(stream: str) -> dict[str, str]:
        return {
            "class": "logging.StreamHandler",
            "formatter": "structlog",
            "stream": stream,
        }

    loggers: dict[str, dict[str, Any]] = {
        "uvicorn": {"handlers": ["default"], "level": level, "propagate": False},
        "uvicorn.error": {"level": level},
        "uvicorn.access": {"handlers": ["access"], "level": level, "propagate": False},
    }
    loggers.update({name: {"level": lvl} for name, lvl in _PINNED_LEVELS.items()})

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structlog": {
                "()": structlog.stdlib.ProcessorFormatter,
                "foreign_pre_chain": _foreign_pre_chain(),
                "processors": _render_processors(config),
            }
        },
        "handlers": {
            "default": stream_handler("ext://sys.stderr"),
            "access": stream_handler("ext://sys.stdout"),
        },
        "loggers": loggers,
        "root": {"handlers": ["default"], "level": level},
    }


class _LevelRange(logging.Filter):
    """Pass records whose level lies in ``[low, high]``."""

    def __init__(
        self, low: int = logging.NOTSET, high: int = logging.CRITICAL
    ) -> None:
        super().__init__()
        self._low = low
        self._high = high

    def filter(self, record: logging.LogRecord) -> bool:
        return self._low <= record.levelno <= self._high


class _DictPreservingQueueHandler(QueueHandler):
    """QueueHandler that leaves structlog's event dict in ``record.msg``."""

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        # The stock prepare() flattens msg to a string.
        return copy.copy(record)


def _stop_listener() -> None:
    global _listener
    listener, _listener = _listener, None
    if listener is not None:
        listener.stop()


def _start_listener(config: AppConfig) -> None:
    """Route every stdlib logger into one queue drained by a listener thread.

    Records up to WARNING go to stdout, ERROR and above to stderr.
    """
    global _listener
    _stop_listener()

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_foreign_pre_chain(),
        processors=_render_processors(config),
    )
    stdout = logging.StreamHandler(stream=sys.stdout)
    stdout.addFilter(_LevelRange(high=logging.WARNING))
    stderr = logging.StreamHandler(stream=sys.stderr)
    stderr.addFilter(_LevelRange(low=logging.ERROR))
    for handler in (stdout, stderr):
        handler.setFormatter(formatter)

    records: queue.Queue[logging.LogRecord] = queue.Queue()
    root = logging.getLogger()
    root.handlers[:] = [_DictPreservingQueueHandler(records)]
    root.setLevel(config.log_level)

    for name in list(logging.root.manager.loggerDict):
        logger = logging.getLogger(name)
        logger.handlers.clear()
        logger.propagate = True
        logger.setLevel(_PINNED_LEVELS.get(name, config.log_level))

    _listener = QueueListener(records, stdout, stderr, respect_handler_level=True)
    _listener.start()
    atexit.register(_stop_listener)


def configure_logging(config: AppConfig) -> dict[str, Any]:
    """Configure structlog and stdlib logging; return the uvicorn dictConfig.

    Every event carries ``app`` and ``environment`` from the config.
    """
    structlog.configure(
        processors=[
            _drop_color_message,
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.bind_contextvars(
        app=config.app_name, environment=config.environment
    )

    cfg = build_logging_config(config)
    logging.config.dictConfig(cfg)
    _start_listener(config)

    log.info(
        "logging_configured", log_format=config.log_format, log_level=config.log_level
    )
    return cfg
