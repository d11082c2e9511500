"""Tool kinds, definitions, and execution types."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class ResourceClass(Enum):
    """Resource classes that agent-level permission defaults apply to."""

    READ = "read"
    EDIT = "edit"
    BASH = "bash"
    WEBFETCH = "webfetch"
    TODO = "todo"
    TASK = "task"
    SKILL = "skill"


class ToolKind(Enum):
    """Closed set of tools the runtime knows about."""

    READ = "read"
    WRITE = "write"
    EDIT = "edit"
    BASH = "bash"
    GLOB = "glob"
    GREP = "grep"
    LIST = "list"
    WEBFETCH = "webfetch"
    TODOWRITE = "todowrite"
    TODOREAD = "todoread"
    TASK = "task"
    SKILL = "skill"

    @classmethod
    def parse(cls, name: str | ToolKind) -> ToolKind:
        """Resolve a tool name. Raises ValueError for unknown names."""
        if isinstance(name, ToolKind):
            return name
        try:
            return cls(name.strip().lower())
        except ValueError:
            known = ", ".join(k.value for k in cls)
            raise ValueError(f"Unknown tool: {name!r}. Known tools: {known}") from None

    @property
    def resource_class(self) -> ResourceClass:
        return _RESOURCE_CLASSES[self]

    @property
    def side_effecting(self) -> bool:
        return self in (ToolKind.WRITE, ToolKind.EDIT, ToolKind.BASH, ToolKind.TODOWRITE)


_RESOURCE_CLASSES: dict[ToolKind, ResourceClass] = {
    ToolKind.READ: ResourceClass.READ,
    ToolKind.GLOB: ResourceClass.READ,
    ToolKind.GREP: ResourceClass.READ,
    ToolKind.LIST: ResourceClass.READ,
    ToolKind.WRITE: ResourceClass.EDIT,
    ToolKind.EDIT: ResourceClass.EDIT,
    ToolKind.BASH: ResourceClass.BASH,
    ToolKind.WEBFETCH: ResourceClass.WEBFETCH,
    ToolKind.TODOWRITE: ResourceClass.TODO,
    ToolKind.TODOREAD: ResourceClass.TODO,
    ToolKind.TASK: ResourceClass.TASK,
    ToolKind.SKILL: ResourceClass.SKILL,
}

# Names accepted as keys in `tools:` and `permission:` metadata blocks.
KNOWN_TOOL_KEYS = frozenset(k.value for k in ToolKind) | frozenset(c.value for c in ResourceClass)


@dataclass(frozen=True, slots=True)
class ToolParam:
    """A parameter for a tool."""

    name: str
    type: str  # "string", "integer", "boolean", "array", "object"
    description: str
    required: bool = True
    enum: tuple[str, ...] | None = None
    default: Any = None


@dataclass(frozen=True, slots=True)
class ToolDef:
    """Definition of a tool exposed to the model."""

    name: str
    description: str
    parameters: tuple[ToolParam, ...] = ()


@dataclass(slots=True)
class ToolResultData:
    """Data returned from tool execution."""

    content: str
    is_error: bool = False


@dataclass(frozen=True, slots=True)
class ToolCall:
    """A tool call requested by the model."""

    id: str
    name: str
    args: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ToolContext:
    """Context passed to tool execute methods."""

    cwd: Path
    session_id: str = ""
    todos: list[dict[str, Any]] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)
