"""Prometheus metrics for agent runs, tool calls and token usage."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from time import monotonic
from typing import NamedTuple

import prometheus_client

from toolchat.platform.observability.metrics import BUCKETS


class AgentMetricsLabels(NamedTuple):
    agent_slug: str


class ToolMetricsLabels(NamedTuple):
    agent_slug: str
    tool_name: str


agent_run_histogram = prometheus_client.Histogram(
    name="agent_run_duration_seconds",
    documentation="Agent run duration (seconds)",
    labelnames=(*AgentMetricsLabels._fields, "status"),
    buckets=BUCKETS,
)

tool_call_histogram = prometheus_client.Histogram(
    name="agent_tool_call_duration_seconds",
    documentation="Tool call duration (seconds)",
    labelnames=(*ToolMetricsLabels._fields, "status"),
    buckets=BUCKETS,
)

agent_tokens_counter = prometheus_client.Counter(
    name="agent_tokens",
    documentation="Tokens consumed by agent model calls",
    labelnames=("agent_slug", "model", "direction"),
)


@asynccontextmanager
async def collect_agent_metrics(labels: AgentMetricsLabels) -> AsyncIterator[None]:
    """Record the duration and outcome of the wrapped agent run."""
    start_time = monotonic()
    status = "success"
    try:
        yield
    except BaseException:
        status = "error"
        raise
    finally:
        agent_run_histogram.labels(*labels, status).observe(monotonic() - start_time)


def record_tool_call(labels: ToolMetricsLabels, duration: float, error: bool = False) -> None:
    status = "error" if error else "success"
    tool_call_histogram.labels(*labels, status).observe(duration)


def record_agent_tokens(
    agent_slug: str,
    model: str,
    input_tokens: int,
    output_tokens: int,
) -> None:
    if input_tokens:
        agent_tokens_counter.labels(agent_slug, model, "input").inc(input_tokens)
    if output_tokens:
        agent_tokens_counter.labels(agent_slug, model, "output").inc(output_tokens)
