"""Capability provider (MCP server) configuration.

Server specifications are read from a YAML file::

    servers:
      - name: files
        command: npx
        args: ["-y", "@modelcontextprotocol/server-filesystem", "."]
        env:
          - {key: DEBUG, value: "1"}
        cwd: /srv/data
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from toolbridge.exceptions import ConfigError


class EnvVar(BaseModel):
    """One environment variable set for a server process."""

    key: str = Field(min_length=1)
    value: str


class McpServerConfig(BaseModel):
    """How to start one provider process (stdio transport)."""

    name: str = Field(min_length=1, description="A human-friendly, unique name.")
    command: str = Field(min_length=1, description="Executable that starts the server.")
    args: list[str] = Field(default_factory=list, description="Arguments for the command.")
    env: list[EnvVar] = Field(
        default_factory=list,
        description="Environment variables added on top of the client's environment.",
    )
    cwd: Optional[str] = Field(default=None, description="Working directory.")
    stderr: Literal["inherit", "discard"] = Field(
        default="inherit",
        description="Whether the server's stderr goes to ours or is discarded.",
    )

    def env_overlay(self) -> dict[str, str]:
        """Return the configured environment variables as a dict."""
        return {var.key: var.value for var in self.env}


class McpConfig(BaseModel):
    """List of provider servers to start."""

    servers: list[McpServerConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_names(self) -> McpConfig:
        seen: set[str] = set()
        for server in self.servers:
            if server.name in seen:
                raise ValueError(f"duplicate server name: {server.name}")
            seen.add(server.name)
        return self

    @classmethod
    def load_from_path(cls, path: str | Path) -> McpConfig:
        """Read and validate a YAML server configuration.

        Raises:
            ConfigError: If the file cannot be read, is not YAML, or does
                not match the schema.
        """
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Failed to read MCP config from {path}: {exc}") from exc
        try:
            raw = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid MCP config YAML in {path}: {exc}") from exc
        try:
            return cls.model_validate(raw if raw is not None else {})
        except ValidationError as exc:
            raise ConfigError(f"Invalid MCP config in {path}: {exc}") from exc

    @classmethod
    def json_schema(cls) -> str:
        """JSON schema of the configuration file format, pretty-printed."""
        return json.dumps(cls.model_json_schema(), indent=2)
