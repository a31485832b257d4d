"""Structured logging setup.

Request-scoped keys (``request_id``, ``method``, ``path``) are bound through
``structlog.contextvars`` by ``RequestContextMiddleware`` and merged into
every event logged while the request is handled.
"""

from __future__ import annotations

import logging

import structlog

SERVICE_NAME = "teamchat"


def _add_service(logger, method_name, event_dict):
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def configure_logging(level: str = "info", fmt: str = "json") -> None:
    """Configure structlog. ``fmt`` is ``json`` for production, ``text`` for a console."""
    processors = [
        structlog.contextvars.merge_contextvars,
        _add_service,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if fmt == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        cache_logger_on_first_use=False,
    )
