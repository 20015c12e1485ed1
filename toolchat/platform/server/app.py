# ruff: noqa: E402
"""FastAPI application factory and server configuration.

This module creates and configures the FastAPI application with all middleware,
routes, error handlers and lifecycle management.
"""

import asyncio
import logging
import os
import signal
import warnings
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager

# langchain-litellm chunks trip Pydantic serializer warnings when checkpointed
warnings.filterwarnings("ignore", message="Pydantic serializer warnings")

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from toolchat.agents.assistant.routes import assistant_router
from toolchat.agents.assistant.setup import build_assistant_agent
from toolchat.platform.agent.checkpoint import EvictingMemorySaver
from toolchat.platform.agent.protocol import Agent
from toolchat.platform.exceptions import ChatNotFoundError, RunTimeoutError, UnauthorizedError
from toolchat.platform.observability import errors as bugsnag
from toolchat.platform.observability.logging import configure_logging
from toolchat.platform.observability.metrics import prometheus_middleware
from toolchat.platform.observability.tracing import initialize_tracing
from toolchat.platform.server.health import HealthCheck
from toolchat.platform.server.middlewares import CorrelationIdMiddleware
from toolchat.platform.server.routes import root as root_router
from toolchat.platform.settings import Settings
from toolchat.platform.store.conversations import InMemoryConversationStore

logger = logging.getLogger(__name__)

# Returns: (builder_class, agent)
type AgentFactory = Callable[[FastAPI], Awaitable[tuple[type, Agent]]]

# Agents built at startup - add new agents here
AGENT_FACTORIES: list[AgentFactory] = [
    build_assistant_agent,
]


async def build_agents(app: FastAPI, factories: list[AgentFactory]) -> None:
    """Build agents and cache them in app.state.agents keyed by builder class."""
    app.state.agents = {}  # type: dict[type, Agent]
    for factory in factories:
        builder_cls, agent = await factory(app)
        app.state.agents[builder_cls] = agent
        logger.info(f"Agent '{agent.slug}' built and cached")


def lifespan_closure(settings: Settings, agent_factories: list[AgentFactory] | None = None):
    factories = AGENT_FACTORIES if agent_factories is None else agent_factories

    @asynccontextmanager
    async def lifespan(app):
        """Set up logging, error reporting and tracing, then the chat store,
        the checkpointer and the agents shared by all requests."""
        if settings.bugsnag.release_stage in ["production", "development"]:
            signal_handler = SignalHandler(app)
            signal_handler.register_signal_handler()
        # Before Bugsnag: configuring logging replaces the root handlers
        if settings.app_http.log_json is not None:
            json_output = settings.app_http.log_json
        else:
            json_output = settings.bugsnag.release_stage != "local"
        configure_logging(settings.app_http.log_level, json_output=json_output)
        await bugsnag.initialize_bugsnag(
            settings.bugsnag.api_key,
            settings.bugsnag.release_stage,
        )

        tracer_provider = None
        if settings.opentelemetry.enabled:
            tracer_provider = initialize_tracing(settings.opentelemetry.endpoint)

        app.state.settings = settings
        app.state.store = InMemoryConversationStore()
        app.state.checkpointer = EvictingMemorySaver(
            ttl_seconds=settings.checkpoint.ttl_seconds,
            max_threads=settings.checkpoint.max_threads,
        )

        await build_agents(app, factories)

        HealthCheck.enable()
        yield
        HealthCheck.disable()
        if tracer_provider is not None:
            tracer_provider.shutdown()

    return lifespan


def register_exception_handlers(app: FastAPI) -> None:
    """Map store ownership and lookup errors and run timeouts to HTTP responses."""
    app.add_exception_handler(UnauthorizedError, unauthorized_handler)
    app.add_exception_handler(ChatNotFoundError, chat_not_found_handler)
    app.add_exception_handler(RunTimeoutError, run_timeout_handler)


async def unauthorized_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=403, content={"detail": str(exc)})


async def chat_not_found_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def run_timeout_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=504, content={"detail": str(exc)})


def create_app(settings: Settings, agent_factories: list[AgentFactory] | None = None):
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings instance
        agent_factories: Optional agent factories replacing the defaults (for testing)

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(lifespan=lifespan_closure(settings, agent_factories))
    app.add_middleware(CorrelationIdMiddleware)
    app.middleware("http")(prometheus_middleware)
    if settings.opentelemetry.enabled:
        FastAPIInstrumentor.instrument_app(app, excluded_urls=settings.opentelemetry.excluded_urls)

    register_exception_handlers(app)

    # Include platform routes (health, metrics, chats, conversations)
    app.include_router(root_router)

    # Include agent routes
    app.include_router(assistant_router)

    return app


class SignalHandler:
    def __init__(self, app: FastAPI):
        self.app = app

    async def handle_exit(self):
        """
        Handle the exit of the server
        Do NOT use FastAPI @app.on_event("shutdown") or lifespan
        The problem with this method is, it is invoked *after* server
        stops accepting request, so it does not give us any time to
        drain requests in progress and DNS cache to refresh
        """
        HealthCheck.disable()
        for _ in range(20):
            logging.info("Shutting down...")
            await asyncio.sleep(1)

        # stop service successfully
        os.kill(os.getpid(), signal.SIGUSR1)

    def signal_handler(self):
        asyncio.create_task(self.handle_exit())

    def register_signal_handler(self) -> None:
        """
        Register signal handlers for the server
        """
        loop = asyncio.get_running_loop()
        for sig in [signal.SIGINT, signal.SIGTERM]:
            loop.add_signal_handler(sig, self.signal_handler)
