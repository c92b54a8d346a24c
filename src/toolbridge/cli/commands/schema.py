"""toolbridge config-schema -- print the MCP config file schema."""

from __future__ import annotations

import click


@click.command("config-schema")
def config_schema() -> None:
    """Print the JSON schema of the --mcp-config YAML file."""
    from toolbridge.mcp.config import McpConfig

    click.echo(McpConfig.json_schema())
