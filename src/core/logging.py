"""Logfire setup plus small helpers for structured service logs.

Modules log through ``logging.getLogger(__name__)``; once ``configure_logfire``
has run, those records are forwarded to Logfire along with any ``extra`` fields.
"""

import logging

import logfire
from fastapi import FastAPI

from src.core.config import settings
from src.domain.actor import Actor


SERVICE_NAME = "housekeeping-tasks"

logger = logging.getLogger(__name__)


def configure_logfire() -> None:
    """Configure Logfire and route standard logging records into it.

    Nothing leaves the process unless LOGFIRE_TOKEN is set.
    """
    logfire.configure(
        token=settings.logfire_token,
        service_name=SERVICE_NAME,
        service_version="0.1.0",
        environment=settings.environment,
        send_to_logfire="if-token-present",
    )
    logging.basicConfig(handlers=[logfire.LogfireLoggingHandler()], level=logging.INFO)
    logger.info("Logfire configured", extra={"environment": settings.environment})


def instrument_fastapi(app: FastAPI) -> None:
    logfire.instrument_fastapi(app)
    logger.info("FastAPI instrumentation configured")


def span(name: str) -> logfire.LogfireSpan:
    """Open a span named ``<module>.<operation>`` around a service call."""
    return logfire.span(name)


def log_with_context(logger: logging.Logger, level: str, message: str, **context: object) -> None:
    """Log at the named level with ``context`` attached as structured fields."""
    getattr(logger, level.lower())(message, extra=context)


def log_with_actor(logger: logging.Logger, level: str, message: str, actor: Actor, **context: object) -> None:
    """Log on behalf of an actor; every record carries the actor's id and role."""
    log_with_context(logger, level, message, user_id=actor.id, role=actor.role.value, **context)
