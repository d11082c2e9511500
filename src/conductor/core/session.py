"""In-memory conversation session bound to one agent."""

from __future__ import annotations

import asyncio
import uuid
from pathlib import Path
from typing import Any

from conductor.audit.logger import AuditLog
from conductor.types.agents import AgentDefinition
from conductor.types.messages import Turn
from conductor.types.skills import SkillDefinition
from conductor.types.tools import ToolContext


def new_session_id() -> str:
    """Generate a new session ID."""
    return uuid.uuid4().hex[:12]


class Session:
    """A conversation bound to a single agent for its whole lifetime.

    The session owns its history. Subtasks get their own child session
    whose audit log forwards to this one; nothing else crosses over except
    the single ``subtask`` history entry the dispatcher appends.
    """

    def __init__(
        self,
        agent: AgentDefinition,
        *,
        session_id: str | None = None,
        cwd: Path | str = ".",
        rules: str = "",
        audit: AuditLog | None = None,
        parent_id: str | None = None,
        depth: int = 0,
    ) -> None:
        self.session_id = session_id or new_session_id()
        self._agent = agent
        self.cwd = Path(cwd).resolve()
        self.rules = rules
        self.audit = audit or AuditLog(self.session_id)
        self.parent_id = parent_id
        self.depth = depth
        self.todos: list[dict[str, Any]] = []
        self.turn_lock = asyncio.Lock()
        self._history: list[Turn] = []
        self._skills: list[SkillDefinition] = []

    @property
    def agent(self) -> AgentDefinition:
        return self._agent

    @property
    def history(self) -> tuple[Turn, ...]:
        return tuple(self._history)

    @property
    def skills(self) -> tuple[SkillDefinition, ...]:
        return tuple(self._skills)

    def add_turn(self, turn: Turn) -> None:
        self._history.append(turn)

    def has_skill(self, name: str) -> bool:
        return any(s.name == name for s in self._skills)

    def add_skill(self, skill: SkillDefinition) -> bool:
        """Append a skill reference. Returns False if it was already loaded."""
        if self.has_skill(skill.name):
            return False
        self._skills.append(skill)
        return True

    def context_blocks(self) -> tuple[str, ...]:
        """Instruction blocks in order: global rules, agent prompt, skills."""
        blocks = [self.rules, self._agent.prompt]
        blocks.extend(f"# Skill: {s.name}\n\n{s.prompt}" for s in self._skills)
        return tuple(b for b in blocks if b.strip())

    def tool_context(self) -> ToolContext:
        return ToolContext(cwd=self.cwd, session_id=self.session_id, todos=self.todos)

    def spawn_child(self, agent: AgentDefinition) -> Session:
        """Create a subtask session that shares only the audit trail."""
        child_id = new_session_id()
        return Session(
            agent,
            session_id=child_id,
            cwd=self.cwd,
            rules=self.rules,
            audit=self.audit.child(child_id),
            parent_id=self.session_id,
            depth=self.depth + 1,
        )

    def discard(self) -> None:
        """Drop history, skills, and todos once a subtask has reported back."""
        self._history.clear()
        self._skills.clear()
        self.todos.clear()

    def __repr__(self) -> str:
        return (
            f"Session(id={self.session_id!r}, agent={self._agent.name!r}, "
            f"turns={len(self._history)}, depth={self.depth})"
        )
