"""Immutable snapshot of loaded agents, skills, and commands."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any

from conductor.errors import UnknownAgentError, UnknownCommandError, UnknownSkillError
from conductor.types.agents import AgentDefinition, AgentMode
from conductor.types.commands import CommandDefinition
from conductor.types.skills import SkillDefinition


@dataclass(frozen=True, slots=True)
class RegistryDiff:
    """Names that changed between two snapshots, as ``kind:name`` strings."""

    added: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    changed: tuple[str, ...] = ()

    @property
    def empty(self) -> bool:
        return not (self.added or self.removed or self.changed)

    def __str__(self) -> str:
        if self.empty:
            return "no changes"
        parts = []
        for label, names in (("added", self.added), ("removed", self.removed),
                             ("changed", self.changed)):
            if names:
                parts.append(f"{label}: {', '.join(names)}")
        return "; ".join(parts)


class Registry:
    """Read-only view over one load of the configuration directory.

    Reloading produces a new Registry; an existing one never changes.
    """

    def __init__(
        self,
        agents: Mapping[str, AgentDefinition] | None = None,
        skills: Mapping[str, SkillDefinition] | None = None,
        commands: Mapping[str, CommandDefinition] | None = None,
        rules: str = "",
        root: Path | None = None,
    ) -> None:
        self._agents = MappingProxyType(dict(sorted((agents or {}).items())))
        self._skills = MappingProxyType(dict(sorted((skills or {}).items())))
        self._commands = MappingProxyType(dict(sorted((commands or {}).items())))
        self._rules = rules
        self._root = root

    @property
    def agents(self) -> Mapping[str, AgentDefinition]:
        return self._agents

    @property
    def skills(self) -> Mapping[str, SkillDefinition]:
        return self._skills

    @property
    def commands(self) -> Mapping[str, CommandDefinition]:
        return self._commands

    @property
    def rules(self) -> str:
        """Global instructions from AGENTS.md, prepended to every session."""
        return self._rules

    @property
    def root(self) -> Path | None:
        return self._root

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_agent(self, name: str) -> AgentDefinition:
        try:
            return self._agents[name]
        except KeyError:
            raise UnknownAgentError(name, list(self._agents)) from None

    def get_skill(self, name: str) -> SkillDefinition:
        try:
            return self._skills[name]
        except KeyError:
            raise UnknownSkillError(name, list(self._skills)) from None

    def get_command(self, name: str) -> CommandDefinition:
        try:
            return self._commands[name]
        except KeyError:
            raise UnknownCommandError(name, list(self._commands)) from None

    def primary_agents(self) -> tuple[AgentDefinition, ...]:
        return tuple(a for a in self._agents.values() if a.mode is AgentMode.PRIMARY)

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "agents": {n: a.to_dict() for n, a in self._agents.items()},
            "skills": {n: s.to_dict() for n, s in self._skills.items()},
            "commands": {n: c.to_dict() for n, c in self._commands.items()},
            "rules": self._rules,
        }

    def fingerprint(self) -> str:
        """SHA-256 over a canonical JSON dump of the snapshot."""
        encoded = json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(encoded.encode()).hexdigest()

    def diff(self, other: Registry) -> RegistryDiff:
        """What changed going from ``self`` to ``other``."""
        added: list[str] = []
        removed: list[str] = []
        changed: list[str] = []
        for kind, old, new in (
            ("agent", self._agents, other.agents),
            ("skill", self._skills, other.skills),
            ("command", self._commands, other.commands),
        ):
            for name in sorted(set(old) | set(new)):
                if name not in old:
                    added.append(f"{kind}:{name}")
                elif name not in new:
                    removed.append(f"{kind}:{name}")
                elif old[name] != new[name]:
                    changed.append(f"{kind}:{name}")
        if self._rules != other.rules:
            changed.append("rules:AGENTS.md")
        return RegistryDiff(tuple(added), tuple(removed), tuple(changed))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Registry):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"Registry(agents={len(self._agents)}, skills={len(self._skills)}, "
            f"commands={len(self._commands)})"
        )
