"""Prometheus metrics for the HTTP layer and the chat event stream.

Request durations are recorded by ``prometheus_middleware``. For streaming
responses this covers the time until headers are sent; the stream itself is
measured per event by ``record_stream_frame`` and per run in
``toolchat.platform.agent.metrics``.
"""

from time import monotonic
from typing import NamedTuple

import prometheus_client
from starlette.routing import Match


class HTTPLabels(NamedTuple):
    method: str
    path: str
    http_status: str


# 200 us up to the default run timeout, three per decade
BUCKETS = (
    0.0002,
    0.0005,
    0.001,
    0.002,
    0.005,
    0.01,
    0.02,
    0.05,
    0.1,
    0.2,
    0.5,
    1,
    2,
    5,
    10,
    20,
    50,
    100,
    300,
    float("inf"),
)

http_histogram = prometheus_client.Histogram(
    name="http_request_duration_seconds",
    documentation="Request duration until response headers (seconds)",
    labelnames=HTTPLabels._fields,
    buckets=BUCKETS,
)

stream_frames_counter = prometheus_client.Counter(
    name="chat_stream_frames",
    documentation="Frames written to chat event streams, by event type",
    labelnames=("event_type",),
)

stream_disconnects_counter = prometheus_client.Counter(
    name="chat_stream_disconnects",
    documentation="Chat streams abandoned by the client before a terminal event",
)


def status_class(status: int) -> str:
    """Collapse a status code to 2XX, 4XX and so on."""
    return f"{status // 100}XX"


def route_template(request) -> str:
    """Matched route template, so path parameters do not explode label cardinality."""
    for route in request.app.routes:
        match, _ = route.matches(request.scope)
        if match is Match.FULL:
            return route.path
    return "path-not-found"


async def prometheus_middleware(request, call_next):
    start_time = monotonic()
    response = await call_next(request)
    labels = HTTPLabels(
        method=request.method,
        path=route_template(request),
        http_status=status_class(response.status_code),
    )
    http_histogram.labels(*labels).observe(monotonic() - start_time)
    return response


def record_stream_frame(event_type: str) -> None:
    stream_frames_counter.labels(event_type).inc()


def record_stream_disconnect() -> None:
    stream_disconnects_counter.inc()


def metrics() -> tuple[bytes, str]:
    """Exposition body and content type for /metrics."""
    return (
        prometheus_client.generate_latest(prometheus_client.REGISTRY),
        prometheus_client.CONTENT_TYPE_LATEST,
    )
