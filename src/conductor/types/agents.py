"""Agent definition types."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from conductor.types.permissions import PermissionPolicy
from conductor.types.tools import KNOWN_TOOL_KEYS, ToolKind


class AgentMode(Enum):
    """Whether an agent can drive a top-level turn or only run as a subtask."""

    PRIMARY = "primary"
    SUBAGENT = "subagent"


@dataclass(frozen=True, slots=True)
class ToolCapabilitySet:
    """Which tools an agent may use. Tools without an entry are enabled."""

    entries: tuple[tuple[str, bool], ...] = ()

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> ToolCapabilitySet:
        """Build from a ``tools:`` block. Raises ValueError on bad input."""
        if raw is None:
            return cls()
        if not isinstance(raw, Mapping):
            raise ValueError(f"tools must be a mapping, got {type(raw).__name__}")
        entries: dict[str, bool] = {}
        for key, value in raw.items():
            key = str(key).strip().lower()
            if key not in KNOWN_TOOL_KEYS:
                raise ValueError(f"unknown tool in tools: {key!r}")
            if not isinstance(value, bool):
                raise ValueError(f"tools.{key} must be true or false, got {value!r}")
            entries[key] = value
        return cls(entries=tuple(sorted(entries.items())))

    def get(self, key: str) -> bool | None:
        for name, enabled in self.entries:
            if name == key:
                return enabled
        return None

    def enabled(self, tool: ToolKind | str) -> bool:
        """Explicit tool entry, then the tool's resource class, then enabled."""
        kind = ToolKind.parse(tool)
        explicit = self.get(kind.value)
        if explicit is not None:
            return explicit
        by_class = self.get(kind.resource_class.value)
        if by_class is not None:
            return by_class
        return True

    def disables(self, key: str) -> bool:
        """True only when ``key`` is explicitly set to false."""
        return self.get(key) is False

    def intersect(self, other: ToolCapabilitySet) -> ToolCapabilitySet:
        """Tools enabled in both sets, resolved to one explicit entry per tool."""
        merged = {
            kind.value: self.enabled(kind) and other.enabled(kind) for kind in ToolKind
        }
        return ToolCapabilitySet(entries=tuple(sorted(merged.items())))

    def without(self, *kinds: ToolKind) -> ToolCapabilitySet:
        merged = dict(self.entries)
        for kind in kinds:
            merged[kind.value] = False
        return ToolCapabilitySet(entries=tuple(sorted(merged.items())))

    def enabled_tools(self) -> tuple[ToolKind, ...]:
        return tuple(kind for kind in ToolKind if self.enabled(kind))

    def to_dict(self) -> dict[str, bool]:
        return dict(self.entries)


@dataclass(frozen=True, slots=True)
class AgentDefinition:
    """A named persona with a fixed tool/permission profile and instruction text."""

    name: str
    description: str
    mode: AgentMode = AgentMode.PRIMARY
    tools: ToolCapabilitySet = field(default_factory=ToolCapabilitySet)
    permission: PermissionPolicy = field(default_factory=PermissionPolicy)
    temperature: float | None = None
    model: str | None = None
    max_steps: int | None = None
    prompt: str = ""
    source: str = ""

    @property
    def plan_only(self) -> bool:
        """A primary agent with bash or edit explicitly disabled."""
        return self.mode is AgentMode.PRIMARY and (
            self.tools.disables("bash") or self.tools.disables("edit")
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "mode": self.mode.value,
            "tools": self.tools.to_dict(),
            "permission": self.permission.to_dict(),
            "temperature": self.temperature,
            "model": self.model,
            "max_steps": self.max_steps,
            "prompt": self.prompt,
            "source": self.source,
        }
