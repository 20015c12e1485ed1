"""Infrastructure endpoints: health, service info and Prometheus metrics."""

import logging

from fastapi import APIRouter, Request, Response

from toolchat.platform.observability.metrics import metrics as prom_metrics
from toolchat.platform.server.health import HealthCheck, readiness_report, service_info

logger = logging.getLogger(__name__)

base_router = APIRouter(tags=["base"])


@base_router.get("/health")
async def health(request: Request):
    """Readiness probe.

    Returns:
        200 with the loaded agent slugs once ready, 404 while starting or draining
    """
    if not HealthCheck.status():
        logger.info("Health check failed: service not ready")
        return Response(status_code=404)
    return readiness_report(getattr(request.app.state, "agents", {}).values())


@base_router.get("/info")
async def info():
    return service_info.info()


@base_router.get("/metrics")
async def metrics():
    body, media_type = prom_metrics()
    return Response(body, media_type=media_type)
