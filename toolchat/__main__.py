"""Entry point when the package is executed as a module."""

import asyncio
import os
import sys

import click
import uvicorn

from .platform.settings import Settings
from .platform.streaming.client import ChatStreamClient


@click.group()
def main():
    """toolchat service and terminal client."""


@main.command()
@click.option("--reload", is_flag=True)
def serve(reload=False):
    """Run the HTTP service."""
    settings = Settings()

    uvicorn.run(
        "toolchat:app",
        loop="uvloop",
        factory=True,
        host=settings.app_http.host,
        port=settings.app_http.port,
        log_level=settings.app_http.log_level.lower(),
        reload=reload,
    )


class StreamPrinter:
    """Echo the rendered transcript to the terminal as it grows."""

    def __init__(self):
        self._shown = ""

    def __call__(self, rendered: str) -> None:
        # Resolved tool blocks rewrite earlier text; print from where it diverges
        common = os.path.commonprefix([self._shown, rendered])
        click.echo(rendered[len(common) :], nl=False)
        self._shown = rendered


async def _chat(base_url: str, user_id: str, chat_id: str | None) -> None:
    async with ChatStreamClient(base_url, user_id) as client:
        chat_id = chat_id or await client.create_chat()
        click.echo(f"Chat {chat_id}. Empty line to quit.")
        while True:
            message = await asyncio.to_thread(click.prompt, "you", default="", show_default=False)
            if not message.strip():
                return
            transcript = await client.send(chat_id, message, on_update=StreamPrinter())
            click.echo()
            if not transcript.succeeded:
                click.secho(f"error: {transcript.error}", fg="red", err=True)
            for warning in transcript.warnings:
                click.secho(f"warning: {warning}", fg="yellow", err=True)


@main.command()
@click.option("--base-url", default="http://localhost:8000", show_default=True)
@click.option("--user-id", envvar="TOOLCHAT_USER_ID", required=True)
@click.option("--chat-id", default=None, help="Continue an existing chat")
def chat(base_url, user_id, chat_id):
    """Chat with the assistant from the terminal."""
    asyncio.run(_chat(base_url, user_id, chat_id))


if __name__ == "__main__":
    sys.exit(main())
