from __future__ import annotations

import logging
import sys
from collections.abc import MutableMapping
from typing import Any

import orjson
import structlog
from structlog.stdlib import BoundLogger

SERVICE_NAME = "steersolo"
REDACTED = "[redacted]"
# Provider credentials and webhook signatures must never reach the log sink.
SENSITIVE_KEYS = frozenset(
    {
        "authorization",
        "api_key",
        "secret_key",
        "paystack_secret_key",
        "signature",
        "x_paystack_signature",
        "password",
        "token",
    }
)


def _level_for(level_name: str) -> int:
    mapping = logging.getLevelNamesMapping()
    return mapping.get(level_name.strip().upper(), logging.INFO)


def add_service_name(_: Any, __: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def redact_sensitive(_: Any, __: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    for key in event_dict.keys() & SENSITIVE_KEYS:
        if event_dict[key]:
            event_dict[key] = REDACTED
    return event_dict


def render_json(obj: Any, **_: Any) -> str:
    # Naira amounts arrive as Decimal and timestamps as datetime.
    return orjson.dumps(obj, option=orjson.OPT_NON_STR_KEYS, default=str).decode()


def build_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        add_service_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.add_log_level,
        redact_sensitive,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(serializer=render_json),
    ]


def configure_logging(level_name: str) -> None:
    level = _level_for(level_name)

    logging.basicConfig(level=level, format="%(message)s", stream=sys.stdout)
    # uvicorn installs its own handlers; route them through the root logger instead.
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.propagate = True

    structlog.configure(
        processors=build_processors(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_request_context(method: str, path: str) -> None:
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(method=method, path=path)


def get_logger(*args: Any, **kwargs: Any) -> BoundLogger:
    return structlog.get_logger(*args, **kwargs)
