"""Conductor -- agent orchestration runtime.

Usage:
    import conductor

    runtime = conductor.Runtime(conductor.load_settings("./.conductor"), model)
    runtime.load()
    result = await runtime.run_command("git-quick", "HEAD~1")
    match result:
        case conductor.SubtaskResult(result_text=t):
            print(t)
        case conductor.TurnResult(text=t):
            print(t)
"""

from conductor.core.config import load_settings
from conductor.core.engine import Runtime
from conductor.definitions.loader import LoadResult, load_registry
from conductor.definitions.registry import Registry
from conductor.errors import (
    ConductorError,
    ConfigError,
    PermissionDeniedError,
    SubtaskTimeoutError,
    UnknownAgentError,
    UnknownCommandError,
    UnknownSkillError,
    UserRejectedError,
)
from conductor.types.agents import AgentDefinition, AgentMode
from conductor.types.commands import CommandDefinition
from conductor.types.config import RuntimeSettings
from conductor.types.messages import ModelClient, ModelRequest, ModelStep, SubtaskResult, TurnResult
from conductor.types.skills import SkillDefinition
from conductor.types.tools import ToolCall

__version__ = "0.1.0"

__all__ = [
    # Core API
    "Runtime",
    "load_registry",
    "load_settings",
    "LoadResult",
    "Registry",
    "RuntimeSettings",
    # Definitions
    "AgentDefinition",
    "AgentMode",
    "CommandDefinition",
    "SkillDefinition",
    # Model boundary
    "ModelClient",
    "ModelRequest",
    "ModelStep",
    "SubtaskResult",
    "ToolCall",
    "TurnResult",
    # Errors
    "ConductorError",
    "ConfigError",
    "PermissionDeniedError",
    "SubtaskTimeoutError",
    "UnknownAgentError",
    "UnknownCommandError",
    "UnknownSkillError",
    "UserRejectedError",
]
