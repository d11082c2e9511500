"""Error taxonomy for Conductor.

Every error carries the offending name or resource and the rule or limit
that triggered it, so the message is useful on its own.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from conductor.types.permissions import PolicyRule


class ConductorError(Exception):
    """Base class for all Conductor errors."""


class ConfigError(ConductorError):
    """A definition file is malformed, invalid, or a duplicate."""

    def __init__(self, path: str | Path, problem: str) -> None:
        self.path = str(path)
        self.problem = problem
        super().__init__(f"{self.path}: {problem}")


class UnknownNameError(ConductorError, KeyError):
    """A name is absent from the registry."""

    kind = "name"

    def __init__(self, name: str, available: list[str] | tuple[str, ...] = ()) -> None:
        self.name = name
        self.available = tuple(sorted(available))
        super().__init__(name)

    def __str__(self) -> str:
        avail = ", ".join(self.available) or "(none)"
        return f"Unknown {self.kind}: {self.name!r}. Available: {avail}"


class UnknownAgentError(UnknownNameError):
    kind = "agent"


class UnknownSkillError(UnknownNameError):
    kind = "skill"


class UnknownCommandError(UnknownNameError):
    kind = "command"


class ToolCallError(ConductorError):
    """A single tool call was refused. The agent turn itself may continue."""

    def __init__(self, tool: str, resource: str, rule: PolicyRule) -> None:
        self.tool = tool
        self.resource = resource
        self.rule = rule
        super().__init__(self._message())

    def _message(self) -> str:
        return f"{self.tool}({self.resource}) refused by rule {self.rule}"


class PermissionDeniedError(ToolCallError):
    """Policy denied a tool call."""

    def _message(self) -> str:
        return f"Permission denied: {self.tool}({self.resource}) by rule {self.rule}"


class UserRejectedError(ToolCallError):
    """The operator rejected an approval prompt."""

    def __init__(
        self, tool: str, resource: str, rule: PolicyRule, reason: str | None = None,
    ) -> None:
        self.reason = reason
        super().__init__(tool, resource, rule)

    def _message(self) -> str:
        msg = f"User rejected {self.tool}({self.resource}) (asked by rule {self.rule})"
        if self.reason:
            msg += f": {self.reason}"
        return msg


class SubtaskTimeoutError(ConductorError):
    """A subtask exceeded its step or time budget."""

    def __init__(self, command: str, limit: str, **details: Any) -> None:
        self.command = command
        self.limit = limit
        self.details = details
        super().__init__(f"Subtask {command!r} exceeded its budget: {limit}")
