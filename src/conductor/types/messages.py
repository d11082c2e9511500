"""Turn history, model boundary, and result types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from conductor.types.tools import ToolCall, ToolDef

if TYPE_CHECKING:
    from conductor.audit.logger import AuditEntry
    from conductor.errors import SubtaskTimeoutError
    from conductor.types.agents import AgentDefinition


@dataclass(frozen=True, slots=True)
class Turn:
    """One entry of a session's turn history."""

    role: str  # "user", "assistant", "tool", "subtask"
    content: str
    tool_calls: tuple[ToolCall, ...] = ()
    tool_call_id: str | None = None
    name: str | None = None
    is_error: bool = False


@dataclass(frozen=True, slots=True)
class ModelRequest:
    """Everything the model sees for one step.

    ``instructions`` is an ordered list of opaque text blocks; joining them
    is the model client's concern.
    """

    agent: AgentDefinition
    instructions: tuple[str, ...]
    history: tuple[Turn, ...]
    tools: tuple[ToolDef, ...]
    session_id: str


@dataclass(frozen=True, slots=True)
class ModelStep:
    """One model response: text, tool calls, or both."""

    text: str = ""
    tool_calls: tuple[ToolCall, ...] = ()

    @property
    def done(self) -> bool:
        return not self.tool_calls


@runtime_checkable
class ModelClient(Protocol):
    """The LLM boundary. Inference itself lives outside Conductor."""

    async def next_step(self, request: ModelRequest) -> ModelStep:
        """Return the next step for the given request."""
        ...


@dataclass(frozen=True, slots=True)
class TurnResult:
    """Outcome of one user turn through the loop."""

    text: str
    session_id: str
    steps: int = 0
    tool_calls: int = 0
    stop_reason: str = "end_turn"  # "end_turn" or "max_steps"


@dataclass(frozen=True, slots=True)
class SubtaskResult:
    """What a parent session gets back from a subtask."""

    command: str
    result_text: str
    session_id: str
    audit_entries: tuple[AuditEntry, ...] = ()
    steps: int = 0
    error: SubtaskTimeoutError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> SubtaskResult:
        """Re-raise the typed failure, if any. Returns self otherwise."""
        if self.error is not None:
            raise self.error
        return self
