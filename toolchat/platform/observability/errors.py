"""Bugsnag error reporting.

ERROR records on the root logger are sent to Bugsnag, which covers failed
runs (logged with ``logger.exception``) and unhandled request errors. Each
report carries the chat context of the request that produced it.
"""

import logging

import bugsnag
from bugsnag.handlers import BugsnagHandler

from toolchat.platform.constants import SERVICE_VERSION
from toolchat.platform.observability.logging import correlation_id_ctx, thread_id_ctx, user_id_ctx


def attach_chat_context(event) -> None:
    event.add_tab(
        "chat",
        {
            "correlation_id": correlation_id_ctx.get(),
            "thread_id": thread_id_ctx.get(),
            "user_id": user_id_ctx.get(),
        },
    )


async def initialize_bugsnag(api_key: str, release_stage: str) -> None:
    """Configure Bugsnag and attach its handler to the root logger.

    Does nothing for the "local" release stage.
    """
    if release_stage == "local":
        return
    bugsnag.configure(
        api_key=api_key,
        release_stage=release_stage,
        app_version=SERVICE_VERSION,
        project_root="toolchat",
        auto_notify=True,
    )
    bugsnag.before_notify(attach_chat_context)
    handler = BugsnagHandler()
    handler.setLevel(logging.ERROR)
    logging.getLogger().addHandler(handler)
