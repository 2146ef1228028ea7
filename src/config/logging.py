"""structlog setup for the connector (stdlib handlers, JSON or console output)."""
import logging
import re
import sys
from typing import Any, Optional

import structlog
from pythonjsonlogger import jsonlogger

from src.config.settings import LoggingSettings, settings

SENSITIVE_KEYS = frozenset({"access_token", "authorization", "client_secret", "token"})
BEARER_PATTERN = re.compile(r"(Bearer|Basic)\s+[A-Za-z0-9\-._~+/=]+")
QUIET_LOGGERS = ("httpcore", "httpx")


def add_hotel_id_prefix(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Prefix the event with ``[hotel_id]`` when the logger has one bound.

    OPERA clients bind ``hotel_id`` once per instance, so every request
    log line of a property is greppable by its code.
    """
    hotel_id = event_dict.get("hotel_id")
    if hotel_id:
        event_dict["event"] = f"[{hotel_id}] {event_dict.get('event', '')}"
    return event_dict


def mask_secrets(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Blank credential fields and any inline bearer/basic credentials."""
    for key, value in event_dict.items():
        if key in SENSITIVE_KEYS:
            event_dict[key] = "***"
        elif isinstance(value, str) and ("Bearer" in value or "Basic" in value):
            event_dict[key] = BEARER_PATTERN.sub(r"\1 ***", value)
    return event_dict


def _build_handler(logging_settings: LoggingSettings, log_level: int) -> logging.Handler:
    if logging_settings.format == "json":
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(jsonlogger.JsonFormatter())
    else:
        # stderr keeps CLI output on stdout machine-readable
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    handler.setLevel(log_level)
    return handler


def configure_logging(logging_settings: Optional[LoggingSettings] = None) -> None:
    """Route structlog through the stdlib root logger.

    Args:
        logging_settings: Level and output format; defaults to ``settings.logging``
    """
    logging_settings = logging_settings or settings.logging
    log_level = getattr(logging, logging_settings.level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(_build_handler(logging_settings, log_level))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    renderer = (
        structlog.processors.JSONRenderer()
        if logging_settings.format == "json"
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            mask_secrets,
            add_hotel_id_prefix,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.typing.FilteringBoundLogger:
    """Logger for ``name`` (usually ``__name__``)."""
    return structlog.get_logger(name)
