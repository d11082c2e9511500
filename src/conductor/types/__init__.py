"""Type definitions for Conductor."""

from conductor.types.agents import AgentDefinition, AgentMode, ToolCapabilitySet
from conductor.types.commands import ARGUMENTS_PLACEHOLDER, CommandDefinition
from conductor.types.config import AuditConfig, DuplicatePolicy, RuntimeSettings, SubtaskLimits
from conductor.types.permissions import (
    PermissionDecision,
    PermissionLevel,
    PermissionPolicy,
    PolicyEntry,
    PolicyRule,
)
from conductor.types.messages import (
    ModelClient,
    ModelRequest,
    ModelStep,
    SubtaskResult,
    Turn,
    TurnResult,
)
from conductor.types.skills import SkillDefinition
from conductor.types.tools import (
    ResourceClass,
    ToolCall,
    ToolContext,
    ToolDef,
    ToolKind,
    ToolParam,
    ToolResultData,
)

__all__ = [
    "ARGUMENTS_PLACEHOLDER",
    "AgentDefinition",
    "AgentMode",
    "AuditConfig",
    "CommandDefinition",
    "DuplicatePolicy",
    "ModelClient",
    "ModelRequest",
    "ModelStep",
    "PermissionDecision",
    "PermissionLevel",
    "PermissionPolicy",
    "PolicyEntry",
    "PolicyRule",
    "ResourceClass",
    "RuntimeSettings",
    "SkillDefinition",
    "SubtaskLimits",
    "SubtaskResult",
    "ToolCall",
    "ToolCapabilitySet",
    "ToolContext",
    "ToolDef",
    "ToolKind",
    "ToolParam",
    "ToolResultData",
    "Turn",
    "TurnResult",
]
