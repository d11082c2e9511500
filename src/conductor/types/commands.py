"""Command definition types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from conductor.types.agents import ToolCapabilitySet

ARGUMENTS_PLACEHOLDER = "$ARGUMENTS"


@dataclass(frozen=True, slots=True)
class CommandDefinition:
    """A templated instruction invocable by name."""

    name: str
    description: str
    template: str
    subtask: bool = False
    agent: str | None = None
    read_only: bool = False
    tools: ToolCapabilitySet = field(default_factory=ToolCapabilitySet)
    model: str | None = None
    source: str = ""

    def render(self, arguments: str = "") -> str:
        """Substitute ``$ARGUMENTS`` into the template.

        A template without the placeholder gets non-empty arguments appended
        after a blank line.
        """
        arguments = arguments.strip()
        if ARGUMENTS_PLACEHOLDER in self.template:
            return self.template.replace(ARGUMENTS_PLACEHOLDER, arguments)
        if not arguments:
            return self.template
        return f"{self.template.rstrip()}\n\n{arguments}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "template": self.template,
            "subtask": self.subtask,
            "agent": self.agent,
            "read_only": self.read_only,
            "tools": self.tools.to_dict(),
            "model": self.model,
            "source": self.source,
        }
