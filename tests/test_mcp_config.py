"""Tests for the MCP server configuration models and YAML loading."""

from __future__ import annotations

import json

import pytest

from toolbridge.exceptions import ConfigError
from toolbridge.mcp.config import McpConfig, McpServerConfig


class TestLoadFromPath:

    def test_full_config(self, tmp_path):
        path = tmp_path / "mcp.yaml"
        path.write_text(
            "servers:\n"
            "  - name: files\n"
            "    command: npx\n"
            "    args: ['-y', '@modelcontextprotocol/server-filesystem', '.']\n"
            "    env:\n"
            "      - {key: DEBUG, value: '1'}\n"
            "    cwd: /srv\n"
            "  - name: time\n"
            "    command: uvx\n"
            "    stderr: discard\n"
        )
        config = McpConfig.load_from_path(path)

        files, time = config.servers
        assert files.name == "files"
        assert files.args == ["-y", "@modelcontextprotocol/server-filesystem", "."]
        assert files.env_overlay() == {"DEBUG": "1"}
        assert files.cwd == "/srv"
        assert files.stderr == "inherit"
        assert time.args == []
        assert time.env_overlay() == {}
        assert time.cwd is None
        assert time.stderr == "discard"

    def test_empty_file_means_no_servers(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert McpConfig.load_from_path(path).servers == []

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Failed to read"):
            McpConfig.load_from_path(tmp_path / "absent.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("servers: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid MCP config YAML"):
            McpConfig.load_from_path(path)

    def test_missing_command(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("servers:\n  - name: x\n")
        with pytest.raises(ConfigError, match="command"):
            McpConfig.load_from_path(path)

    def test_duplicate_names_rejected(self, tmp_path):
        path = tmp_path / "dup.yaml"
        path.write_text(
            "servers:\n"
            "  - {name: a, command: one}\n"
            "  - {name: a, command: two}\n"
        )
        with pytest.raises(ConfigError, match="duplicate server name"):
            McpConfig.load_from_path(path)


class TestSchema:

    def test_json_schema_describes_servers(self):
        schema = json.loads(McpConfig.json_schema())
        assert "servers" in schema["properties"]
        server = McpServerConfig.model_json_schema()
        assert set(server["required"]) == {"name", "command"}
