"""toolbridge chat -- interactive chat loop."""

from __future__ import annotations

import click
import httpx

from toolbridge.cli.formatting import (
    format_banner,
    format_error,
    format_step,
    format_tools,
    get_console,
)
from toolbridge.exceptions import ToolbridgeError
from toolbridge.llm.client import OpenAIClient
from toolbridge.llm.config import DEFAULT_MODEL, LLMSettings
from toolbridge.llm.errors import LLMConfigError
from toolbridge.orchestrator.config import OrchestratorConfig
from toolbridge.session import DEFAULT_SYSTEM_PROMPT, ChatSession

_QUIT_COMMANDS = {"quit", "exit"}


def _open_client(settings: LLMSettings) -> OpenAIClient:
    return OpenAIClient(settings)


@click.command()
@click.option("-e", "--endpoint", envvar="OPENAI_API_ENDPOINT", help="Chat API endpoint URL.")
@click.option("-k", "--api-key", envvar="OPENAI_API_KEY", help="API key for authentication.")
@click.option(
    "-m", "--model", envvar="OPENAI_API_MODEL", default=DEFAULT_MODEL, show_default=True,
    help="Model (Azure: deployment) name.",
)
@click.option(
    "--api-version", envvar="OPENAI_API_VERSION", default=None,
    help="Azure OpenAI API version (e.g. 2025-01-01-preview). Enables Azure mode.",
)
@click.option("--stream/--no-stream", default=True, show_default=True, help="Stream replies when no tools are active.")
@click.option("--max-rounds", type=click.IntRange(min=1), default=8, show_default=True, help="Tool-call rounds per turn.")
@click.option("--system-prompt", default=DEFAULT_SYSTEM_PROMPT, help="System prompt for new conversations.")
@click.pass_context
def chat(
    ctx: click.Context,
    endpoint: str | None,
    api_key: str | None,
    model: str,
    api_version: str | None,
    stream: bool,
    max_rounds: int,
    system_prompt: str,
) -> None:
    """Chat with the model. Configured MCP tools are offered to it.

    Type 'clear' to start over and 'quit' or 'exit' to leave.
    """
    from toolbridge.cli import _start_host

    console = get_console()
    try:
        settings = LLMSettings.from_env(
            endpoint=endpoint, api_key=api_key, model=model, api_version=api_version
        )
    except LLMConfigError as e:
        format_error(str(e), console)
        raise SystemExit(1) from None

    host = _start_host(ctx)
    client = _open_client(settings)
    try:
        if host is not None:
            format_tools(host, console)
        config = OrchestratorConfig(
            max_rounds=max_rounds,
            on_step=lambda step: format_step(step, console),
        )
        session = ChatSession(
            client, host, system_prompt=system_prompt, stream=stream, config=config
        )
        format_banner(console)
        _chat_loop(session, console)
    finally:
        client.close()
        if host is not None:
            host.teardown()


def _chat_loop(session: ChatSession, console) -> None:
    while True:
        try:
            user_input = click.prompt("You", default="", show_default=False)
        except click.Abort:
            console.print()
            break

        command = user_input.strip().lower()
        if command in _QUIT_COMMANDS:
            break
        if command == "clear":
            session.clear()
            console.print("Conversation cleared!")
            continue
        if not command:
            continue

        started = [False]

        def show(fragment: str) -> None:
            if not started[0]:
                console.print("[bold cyan]Assistant:[/bold cyan] ", end="")
                started[0] = True
            console.print(fragment, end="", markup=False, highlight=False, soft_wrap=True)

        try:
            session.send(user_input, on_fragment=show)
        except (ToolbridgeError, httpx.HTTPError) as e:
            if started[0]:
                console.print()
            format_error(str(e), console)
            continue
        console.print()
        console.print()

    console.print("Goodbye!")
