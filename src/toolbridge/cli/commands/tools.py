"""toolbridge tools -- list the capabilities the configured servers expose."""

from __future__ import annotations

import click

from toolbridge.cli.formatting import format_error, format_tools, get_console


@click.command()
@click.pass_context
def tools(ctx: click.Context) -> None:
    """Start every configured MCP server and list its tools.

    Servers that fail to start are reported in the log and skipped.
    """
    from toolbridge.cli import _start_host

    console = get_console()
    host = _start_host(ctx)
    if host is None:
        format_error("No MCP config given. Use --mcp-config or TOOLBRIDGE_MCP_CONFIG.", console)
        raise SystemExit(1)
    with host:
        format_tools(host, console)
        console.print(
            f"[dim]{len(host)} tool(s) from {len(host.providers)} provider(s)[/dim]"
        )
