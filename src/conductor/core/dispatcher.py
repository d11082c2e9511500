"""Task/subtask dispatch: run a command in an isolated child session."""

from __future__ import annotations

import logging

import anyio

from conductor.agents.router import AgentRouter
from conductor.core.loop import AgentLoop
from conductor.core.session import Session
from conductor.errors import SubtaskTimeoutError
from conductor.observability.tracing import span
from conductor.types.commands import CommandDefinition
from conductor.types.config import SubtaskLimits
from conductor.types.messages import SubtaskResult, Turn

logger = logging.getLogger(__name__)


class TaskDispatcher:
    """Runs subtasks to completion within a step and time budget.

    The child session sees only the rendered command. When it finishes,
    the parent gets one ``subtask`` history entry carrying the result text
    (plus the child's audit entries, already forwarded to the parent's
    log), and the child's history and skills are dropped.
    """

    def __init__(
        self,
        router: AgentRouter,
        loop: AgentLoop,
        limits: SubtaskLimits | None = None,
    ) -> None:
        self._router = router
        self._loop = loop
        self._limits = limits or SubtaskLimits()

    @property
    def limits(self) -> SubtaskLimits:
        return self._limits

    async def run_subtask(
        self,
        command: CommandDefinition,
        args: str,
        parent: Session,
        *,
        record: bool = True,
    ) -> SubtaskResult:
        """Run ``command`` with ``args`` as a subtask of ``parent``.

        Exceeding the step or time budget yields a result whose ``error``
        is a SubtaskTimeoutError; ``result.raise_for_error()`` raises it.
        With ``record=False`` the parent's history is left alone (the
        ``task`` tool reports through its own tool result instead). The
        child is discarded however the run ends.
        """
        child = self._router.spawn_subagent(command, args, parent)
        try:
            return await self._run_child(command, child, parent, record=record)
        finally:
            child.discard()

    async def _run_child(
        self, command: CommandDefinition, child: Session, parent: Session, *, record: bool,
    ) -> SubtaskResult:
        limits = self._limits
        max_steps = limits.max_steps
        if child.agent.max_steps is not None:
            max_steps = min(max_steps, child.agent.max_steps)

        text = ""
        error: SubtaskTimeoutError | None = None
        with span("conductor.subtask", {
            "subtask.command": command.name,
            "subtask.agent": child.agent.name,
            "session.id": child.session_id,
            "session.parent_id": parent.session_id,
        }):
            try:
                with anyio.fail_after(limits.timeout):
                    turn = await self._loop.run_turn(child, None, max_steps=max_steps)
            except TimeoutError:
                error = SubtaskTimeoutError(
                    command.name, f"timeout of {limits.timeout:g}s", timeout=limits.timeout,
                )
            except Exception as exc:
                logger.exception("Subtask %s (/%s) raised", child.session_id, command.name)
                if record:
                    parent.add_turn(Turn(
                        role="subtask",
                        content=f"Subtask /{command.name} failed: {exc}",
                        name=command.name,
                        is_error=True,
                    ))
                raise
            else:
                text = turn.text
                if turn.stop_reason == "max_steps":
                    error = SubtaskTimeoutError(
                        command.name, f"max_steps of {max_steps}", max_steps=max_steps,
                    )

        steps = sum(1 for t in child.history if t.role == "assistant")
        result = SubtaskResult(
            command=command.name,
            result_text=text,
            session_id=child.session_id,
            audit_entries=child.audit.entries,
            steps=steps,
            error=error,
        )

        if error is not None:
            logger.warning("Subtask %s (/%s) failed: %s", child.session_id, command.name, error)
        else:
            logger.info("Subtask %s (/%s) finished in %d steps", child.session_id, command.name, steps)

        if record:
            parent.add_turn(Turn(
                role="subtask",
                content=text if error is None else f"{error}\n{text}".rstrip(),
                name=command.name,
                is_error=error is not None,
            ))
        return result

    async def run_task(self, agent: str, prompt: str, parent: Session) -> SubtaskResult:
        """Delegate ``prompt`` to ``agent`` (the ``task`` tool).

        Raises UnknownAgentError before anything runs if the agent is missing.
        """
        command = CommandDefinition(
            name=f"task:{agent}",
            description=f"Task delegated to {agent}",
            template=prompt,
            subtask=True,
            agent=agent,
        )
        self._router.registry.get_agent(agent)
        return await self.run_subtask(command, "", parent, record=False)
