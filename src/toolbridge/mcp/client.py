"""McpClient: JSON-RPC over the standard streams of one provider process.

Each message is one JSON value on one line. A connection has at most one
request in flight: a call writes its request, then blocks reading lines
until the response arrives. Calls from several threads are serialized by a
per-connection lock, so responses can be matched positionally.

Usage::

    with McpClient.spawn(server_config) as client:
        client.initialize()
        for tool in client.list_capabilities():
            print(tool.name)
        result = client.invoke("read_file", {"path": "README.md"})
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
import threading
from typing import Any

from toolbridge._version import __version__
from toolbridge.exceptions import (
    ProviderCallError,
    ProviderClosedError,
    ProviderProtocolError,
    ProviderSpawnError,
    ProviderTransportError,
)
from toolbridge.mcp.config import McpServerConfig
from toolbridge.mcp.models import CapabilityDescriptor

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"
PROTOCOL_VERSION = "2024-11-05"
CLIENT_NAME = "toolbridge"
METHOD_NOT_FOUND = -32601

# Seconds to wait for a terminated provider before killing it
_TERMINATE_GRACE = 2.0


class McpClient:
    """Sole owner of one provider process and both of its pipes.

    Only the protocol operations are public; the pipes never leave this
    object.
    """

    def __init__(self, name: str, process: subprocess.Popen) -> None:
        if process.stdin is None or process.stdout is None:
            raise ValueError("provider process must be started with piped stdin and stdout")
        self.name = name
        self._process = process
        self._stdin = process.stdin
        self._stdout = process.stdout
        self._id_counter = 0
        self._lock = threading.Lock()
        self._closed = False
        self.server_info: dict[str, Any] | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @classmethod
    def spawn(cls, config: McpServerConfig) -> McpClient:
        """Start the process described by ``config`` and wrap it.

        The environment overlay is applied on top of the current
        environment.

        Raises:
            ProviderSpawnError: If the process cannot be started.
        """
        env = {**os.environ, **config.env_overlay()}
        stderr = None if config.stderr == "inherit" else subprocess.DEVNULL
        try:
            process = subprocess.Popen(
                [config.command, *config.args],
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=stderr,
                cwd=config.cwd,
                env=env,
            )
        except (OSError, ValueError) as exc:
            raise ProviderSpawnError(config.name, config.command, exc) from exc
        logger.debug("Started provider %s (pid %s): %s", config.name, process.pid, config.command)
        return cls(config.name, process)

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def closed(self) -> bool:
        return self._closed

    def is_alive(self) -> bool:
        """True while the process is running and the connection is open."""
        return not self._closed and self._process.poll() is None

    def close(self) -> None:
        """Terminate the provider process and release its pipes.

        Safe to call more than once. Does not wait for an in-flight call;
        a blocked reader sees the pipe close and fails with a transport
        error.
        """
        if self._closed:
            return
        self._closed = True
        try:
            self._stdin.close()
        except OSError:
            logger.debug("Error closing stdin of %s", self.name, exc_info=True)
        if self._process.poll() is None:
            self._process.terminate()
            try:
                self._process.wait(timeout=_TERMINATE_GRACE)
            except subprocess.TimeoutExpired:
                logger.warning("Provider %s did not exit, killing it", self.name)
                self._process.kill()
                self._process.wait()
        self._stdout.close()
        logger.debug("Closed provider %s", self.name)

    def __enter__(self) -> McpClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else f"pid={self._process.pid}"
        return f"McpClient(name={self.name!r}, {state})"

    # ------------------------------------------------------------------
    # Protocol operations
    # ------------------------------------------------------------------

    def initialize(self) -> dict[str, Any]:
        """Perform the handshake.

        Sends ``initialize`` and reads one response; its content is kept in
        ``server_info`` but not validated. Then sends the
        ``notifications/initialized`` notification.

        Returns:
            The handshake ``result`` (empty dict if the server sent none).

        Raises:
            ProviderTransportError: If the pipe closed or a write failed.
            ProviderProtocolError: If the response is not valid JSON-RPC.
        """
        response = self._request(
            "initialize",
            {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {},
                "clientInfo": {"name": CLIENT_NAME, "version": __version__},
            },
        )
        result = response.get("result")
        result = result if isinstance(result, dict) else {}
        info = result.get("serverInfo")
        self.server_info = info if isinstance(info, dict) else None
        self._notify("notifications/initialized")
        logger.debug("Handshake with %s complete: %s", self.name, self.server_info)
        return result

    def list_capabilities(self) -> list[CapabilityDescriptor]:
        """Discover the provider's tools (``tools/list``).

        Returns:
            Descriptors in the order the provider listed them.

        Raises:
            ProviderProtocolError: If the result has no ``tools`` list.
        """
        response = self._request("tools/list", {})
        result = response.get("result")
        tools = result.get("tools") if isinstance(result, dict) else None
        if not isinstance(tools, list):
            raise ProviderProtocolError(
                self.name, "tools/list", "invalid response: missing 'tools' list"
            )

        descriptors: list[CapabilityDescriptor] = []
        for record in tools:
            if not isinstance(record, dict) or not record.get("name"):
                logger.warning("Ignoring malformed tool record from %s: %r", self.name, record)
                continue
            descriptors.append(CapabilityDescriptor.from_record(record))
        return descriptors

    def invoke(self, name: str, arguments: Any) -> Any:
        """Call a tool (``tools/call``) and return the raw ``result``.

        The result is provider-defined and returned unmodified.

        Raises:
            ProviderCallError: If the provider answered with an error.
            ProviderProtocolError: If the response carries no result.
            ProviderTransportError: If the pipe closed or a write failed.
        """
        response = self._request("tools/call", {"name": name, "arguments": arguments})
        if "result" not in response:
            raise ProviderProtocolError(
                self.name, "tools/call", "invalid response: missing 'result'"
            )
        return response["result"]

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _next_id(self) -> int:
        self._id_counter += 1
        return self._id_counter

    def _request(self, method: str, params: dict[str, Any]) -> dict[str, Any]:
        with self._lock:
            if self._closed:
                raise ProviderTransportError(self.name, method, "connection is closed")
            request_id = self._next_id()
            self._send(
                {"jsonrpc": JSONRPC_VERSION, "id": request_id, "method": method, "params": params},
                method,
            )
            response = self._read(method)
        if "error" in response:
            raise ProviderCallError(self.name, method, response["error"])
        return response

    def _notify(self, method: str) -> None:
        with self._lock:
            self._send({"jsonrpc": JSONRPC_VERSION, "method": method}, method)

    def _send(self, message: dict[str, Any], operation: str) -> None:
        line = json.dumps(message, separators=(",", ":")) + "\n"
        logger.debug("-> %s: %s", self.name, line.rstrip())
        try:
            self._stdin.write(line.encode("utf-8"))
            self._stdin.flush()
        except (OSError, ValueError) as exc:
            raise ProviderTransportError(self.name, operation, f"write failed: {exc}") from exc

    def _read(self, operation: str) -> dict[str, Any]:
        while True:
            try:
                raw = self._stdout.readline()
            except (OSError, ValueError) as exc:
                raise ProviderTransportError(self.name, operation, f"read failed: {exc}") from exc
            if not raw:
                raise ProviderClosedError(self.name, operation)
            if not raw.strip():
                continue
            logger.debug("<- %s: %s", self.name, raw.rstrip())

            try:
                message = json.loads(raw)
            except ValueError as exc:
                raise ProviderProtocolError(
                    self.name, operation, f"invalid JSON-RPC line: {exc}"
                ) from exc
            if not isinstance(message, dict):
                raise ProviderProtocolError(
                    self.name, operation, f"expected a JSON object, got {type(message).__name__}"
                )
            # Server-initiated messages are not responses to our request
            if "method" in message:
                if "id" in message:
                    self._answer_server_request(message, operation)
                else:
                    logger.debug("Ignoring notification from %s: %s", self.name, message["method"])
                continue
            return message

    def _answer_server_request(self, message: dict[str, Any], operation: str) -> None:
        """Reply to a request the provider sent us; only ``ping`` is supported."""
        method = message["method"]
        reply: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "id": message["id"]}
        if method == "ping":
            reply["result"] = {}
        else:
            logger.debug("Rejecting %s request from %s", method, self.name)
            reply["error"] = {"code": METHOD_NOT_FOUND, "message": f"method not found: {method}"}
        self._send(reply, operation)
