"""Capability data models.

Frozen dataclasses for discovered capabilities and registry entries.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

DEFAULT_INPUT_SCHEMA: dict[str, Any] = {"type": "object"}


@dataclass(frozen=True)
class CapabilityDescriptor:
    """A tool exposed by a provider, as reported by ``tools/list``.

    Attributes:
        name: Tool name, unique within its provider.
        description: Human-readable description, or None if not given.
        input_schema: JSON Schema for the tool's arguments.
    """

    name: str
    description: str | None = None
    input_schema: dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_INPUT_SCHEMA))

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> CapabilityDescriptor:
        """Normalize one ``tools/list`` record.

        A missing description becomes None; a missing schema becomes a
        minimal open-object schema.
        """
        description = record.get("description")
        schema = record.get("inputSchema")
        return cls(
            name=str(record.get("name") or ""),
            description=description if isinstance(description, str) else None,
            input_schema=schema if isinstance(schema, dict) else dict(DEFAULT_INPUT_SCHEMA),
        )

    def to_openai(self) -> dict:
        """Convert to OpenAI function-calling format.

        Returns:
            Dict with "type": "function" and nested "function" object.
        """
        function: dict[str, Any] = {
            "name": self.name,
            "parameters": copy.deepcopy(self.input_schema),
        }
        if self.description is not None:
            function["description"] = self.description
        return {"type": "function", "function": function}


@dataclass(frozen=True)
class RegistryEntry:
    """A registered capability and the provider that owns it."""

    provider: str
    descriptor: CapabilityDescriptor
