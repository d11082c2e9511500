"""Skill definition types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class SkillDefinition:
    """An on-demand block of domain instructions."""

    name: str
    description: str
    prompt: str
    source: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "prompt": self.prompt,
            "source": self.source,
        }
