"""Configuration types for Conductor."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from conductor.types.permissions import PermissionPolicy


class DuplicatePolicy(Enum):
    """Which definition wins when two files declare the same name."""

    FIRST = "first"
    LAST = "last"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class SubtaskLimits:
    """Budget for a single subtask."""

    max_steps: int = 25
    timeout: float = 300.0


@dataclass(frozen=True, slots=True)
class AuditConfig:
    """Configuration for JSONL audit persistence."""

    enabled: bool = False
    audit_dir: Path | None = None


@dataclass(frozen=True, slots=True)
class RuntimeSettings:
    """Resolved runtime settings (explicit > env > conductor.toml > defaults)."""

    config_dir: Path
    default_agent: str | None = None
    strict: bool = False
    on_duplicate: DuplicatePolicy = DuplicatePolicy.FIRST
    max_steps: int = 50
    subtask: SubtaskLimits = field(default_factory=SubtaskLimits)
    audit: AuditConfig = field(default_factory=AuditConfig)
    permission: PermissionPolicy = field(default_factory=PermissionPolicy)
    model: str | None = None
