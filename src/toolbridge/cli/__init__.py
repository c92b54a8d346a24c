"""toolbridge CLI -- terminal chat with MCP tool providers.

This module is NEVER imported from toolbridge/__init__.py.
It is only loaded via the ``toolbridge`` entry point defined in pyproject.toml.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

try:
    import click
except ImportError:
    raise ImportError(
        "CLI dependencies not installed. Install with: pip install toolbridge[cli]"
    ) from None

from toolbridge.cli.formatting import configure_logging, format_error, get_console

if TYPE_CHECKING:
    from toolbridge.mcp.host import CapabilityHost


@click.group()
@click.option(
    "--mcp-config",
    default=None,
    envvar="TOOLBRIDGE_MCP_CONFIG",
    type=click.Path(dir_okay=False),
    help="YAML file listing MCP servers to start.",
)
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
@click.pass_context
def cli(ctx: click.Context, mcp_config: str | None, verbose: bool) -> None:
    """toolbridge: chat with a model that can call MCP tools."""
    ctx.ensure_object(dict)
    ctx.obj["mcp_config"] = mcp_config
    configure_logging(verbose)


def _start_host(ctx: click.Context) -> CapabilityHost | None:
    """Start the capability host from --mcp-config, or None if not given.

    Exits with status 1 if the configuration file is invalid.
    """
    from toolbridge.exceptions import ConfigError
    from toolbridge.mcp.config import McpConfig
    from toolbridge.mcp.host import CapabilityHost

    path = ctx.obj.get("mcp_config")
    if path is None:
        return None
    try:
        config = McpConfig.load_from_path(path)
    except ConfigError as e:
        format_error(str(e), get_console())
        raise SystemExit(1) from None
    return CapabilityHost.start(config)


# Register subcommands after cli group is defined
from toolbridge.cli.commands.chat import chat  # noqa: E402
from toolbridge.cli.commands.schema import config_schema  # noqa: E402
from toolbridge.cli.commands.tools import tools  # noqa: E402

cli.add_command(chat)
cli.add_command(tools)
cli.add_command(config_schema)
