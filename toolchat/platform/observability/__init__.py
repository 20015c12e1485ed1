"""Observability: structured logging, Prometheus metrics, tracing and Bugsnag."""

from toolchat.platform.observability.logging import (
    chat_log_context,
    configure_logging,
    correlation_id_ctx,
    thread_id_ctx,
    user_id_ctx,
)
from toolchat.platform.observability.metrics import (
    BUCKETS,
    prometheus_middleware,
)

__all__ = [
    "BUCKETS",
    "chat_log_context",
    "configure_logging",
    "correlation_id_ctx",
    "prometheus_middleware",
    "thread_id_ctx",
    "user_id_ctx",
]
