"""Structured logging configuration using structlog.

Modules log through ``logging.getLogger(__name__)``; structlog renders every
record, JSON outside local development. Request and chat identifiers live in
context variables and are stamped onto each line.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

import structlog

correlation_id_ctx: ContextVar[str | None] = ContextVar("correlation_id", default=None)
thread_id_ctx: ContextVar[str | None] = ContextVar("thread_id", default=None)
user_id_ctx: ContextVar[str | None] = ContextVar("user_id", default=None)

_CONTEXT_FIELDS = (
    ("correlation_id", correlation_id_ctx),
    ("thread_id", thread_id_ctx),
    ("user_id", user_id_ctx),
)

NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "LiteLLM", "mcp.client.streamable_http")


def add_chat_context(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    for key, var in _CONTEXT_FIELDS:
        value = var.get()
        if value:
            event_dict.setdefault(key, value)
    return event_dict


@contextmanager
def chat_log_context(thread_id: str, user_id: str | None = None) -> Iterator[None]:
    """Tag log lines written inside the block with the chat thread and user."""
    thread_token = thread_id_ctx.set(thread_id)
    user_token = user_id_ctx.set(user_id)
    try:
        yield
    finally:
        user_id_ctx.reset(user_token)
        thread_id_ctx.reset(thread_token)


def configure_logging(log_level: str, json_output: bool = True) -> None:
    """Route stdlib logging through structlog.

    Args:
        log_level: Root level name, e.g. "INFO"
        json_output: JSON lines when True, colored console output otherwise
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        add_chat_context,
        structlog.processors.UnicodeDecoder(),
    ]
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=True)
    )

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
