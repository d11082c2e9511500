"""Permission levels, policy blocks, and decisions."""

from __future__ import annotations

import fnmatch
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from conductor.types.tools import KNOWN_TOOL_KEYS


class PermissionLevel(Enum):
    """Declared level in a policy block, and outcome of an evaluation."""

    ALLOW = "allow"
    ASK = "ask"
    DENY = "deny"


@dataclass(frozen=True, slots=True)
class PolicyEntry:
    """One key of a policy block.

    Either ``level`` is set, or ``patterns`` maps resource patterns to levels
    (e.g. ``bash: {"git push*": ask, "*": allow}``).
    """

    key: str
    level: PermissionLevel | None = None
    patterns: tuple[tuple[str, PermissionLevel], ...] = ()

    def resolve(self, resource: str) -> tuple[PermissionLevel, str | None] | None:
        """Return (level, matched_pattern) for a resource, or None."""
        if self.level is not None:
            return self.level, None
        for pattern, level in self.patterns:
            if pattern == resource:
                return level, pattern
        best: tuple[str, PermissionLevel] | None = None
        for pattern, level in self.patterns:
            if fnmatch.fnmatchcase(resource, pattern):
                if best is None or len(pattern) > len(best[0]):
                    best = (pattern, level)
        if best is None:
            return None
        return best[1], best[0]


@dataclass(frozen=True, slots=True)
class PermissionPolicy:
    """A declarative ``permission:`` block, keyed by tool name or resource class."""

    entries: tuple[PolicyEntry, ...] = ()

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> PermissionPolicy:
        """Build a policy from parsed metadata. Raises ValueError on bad input."""
        if raw is None:
            return cls()
        if not isinstance(raw, Mapping):
            raise ValueError(f"permission must be a mapping, got {type(raw).__name__}")
        entries: list[PolicyEntry] = []
        for key, value in raw.items():
            key = str(key).strip().lower()
            if key not in KNOWN_TOOL_KEYS:
                raise ValueError(f"unknown tool or resource class in permission: {key!r}")
            if isinstance(value, Mapping):
                patterns = tuple(
                    (str(pattern), parse_level(level, where=f"permission.{key}[{pattern!r}]"))
                    for pattern, level in value.items()
                )
                entries.append(PolicyEntry(key=key, patterns=patterns))
            else:
                entries.append(
                    PolicyEntry(key=key, level=parse_level(value, where=f"permission.{key}")),
                )
        entries.sort(key=lambda e: e.key)
        return cls(entries=tuple(entries))

    def get(self, key: str) -> PolicyEntry | None:
        for entry in self.entries:
            if entry.key == key:
                return entry
        return None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for entry in self.entries:
            if entry.level is not None:
                out[entry.key] = entry.level.value
            else:
                out[entry.key] = {p: lvl.value for p, lvl in entry.patterns}
        return out

    def __bool__(self) -> bool:
        return bool(self.entries)


def parse_level(value: Any, *, where: str = "permission") -> PermissionLevel:
    """Parse ``allow``/``ask``/``deny``. Raises ValueError otherwise."""
    try:
        return PermissionLevel(str(value).strip().lower())
    except ValueError:
        raise ValueError(
            f"invalid permission level {value!r} for {where} (expected allow, ask, or deny)",
        ) from None


@dataclass(frozen=True, slots=True)
class PolicyRule:
    """The rule that produced a decision, kept for audit and error messages."""

    source: str  # "mode", "capability", "tool", "class", "runtime", "default", "override"
    level: PermissionLevel
    key: str | None = None
    pattern: str | None = None
    agent: str | None = None

    def __str__(self) -> str:
        if self.source == "default":
            return "global default=deny"
        target = self.key or "*"
        if self.pattern is not None:
            target += f"[{self.pattern!r}]"
        owner = f" (agent {self.agent})" if self.agent else ""
        return f"{self.source}:{target}={self.level.value}{owner}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "level": self.level.value,
            "key": self.key,
            "pattern": self.pattern,
            "agent": self.agent,
        }


@dataclass(frozen=True, slots=True)
class PermissionDecision:
    """Result of evaluating a tool call."""

    outcome: PermissionLevel
    rule: PolicyRule
    tool: str
    resource: str

    @property
    def allowed(self) -> bool:
        return self.outcome is PermissionLevel.ALLOW

    @property
    def denied(self) -> bool:
        return self.outcome is PermissionLevel.DENY

    @property
    def needs_approval(self) -> bool:
        return self.outcome is PermissionLevel.ASK
