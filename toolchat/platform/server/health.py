"""Readiness flag and service metadata for the infrastructure endpoints."""

import datetime
import os
import platform
import socket
import threading
import time
from collections.abc import Iterable
from functools import cached_property

from toolchat.platform.constants import SERVICE_NAME, SERVICE_VERSION

__all__ = ["HealthCheck", "ServiceInfo", "readiness_report", "service_info"]


class HealthCheck:
    """Process-wide readiness flag.

    Set once the agents are built and cleared on shutdown, so load balancers
    stop routing new chats to a draining instance.
    """

    _ready = threading.Event()

    @classmethod
    def enable(cls) -> None:
        cls._ready.set()

    @classmethod
    def disable(cls) -> None:
        cls._ready.clear()

    @classmethod
    def status(cls) -> bool:
        return cls._ready.is_set()


def readiness_report(agents: Iterable) -> dict:
    return {"status": "OK", "agents": sorted(agent.slug for agent in agents)}


class ServiceInfo:
    """Build, host and uptime details served on /info."""

    # Injected by the deployment pipeline
    BUILD_ENV_KEYS = ("BUILD_DATE", "BUILD_URL", "GIT_COMMIT", "IMAGE_NAME")

    def __init__(self) -> None:
        self._started_at = datetime.datetime.now(tz=datetime.UTC)
        self._started_monotonic = time.monotonic()

    @cached_property
    def static(self) -> dict[str, str | None]:
        build = {key.lower(): os.environ.get(key) for key in self.BUILD_ENV_KEYS}
        return build | {
            "service_name": SERVICE_NAME,
            "service_version": os.environ.get("BUILD_VERSION") or SERVICE_VERSION,
            "hostname": socket.gethostname(),
            "os_version": platform.platform(),
            "python_version": platform.python_version(),
        }

    def info(self) -> dict:
        return {
            **self.static,
            "started": self._started_at.isoformat(),
            "uptime_seconds": round(time.monotonic() - self._started_monotonic, 3),
        }


service_info = ServiceInfo()
