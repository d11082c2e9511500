"""The agent turn loop: model step -> tool calls -> model step -> ... -> answer."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from conductor.core.session import Session
from conductor.errors import ToolCallError, UnknownAgentError, UnknownSkillError
from conductor.skills.loader import SkillLoader
from conductor.tools.delegation import (
    skill_definition,
    skill_resource,
    task_definition,
    task_resource,
)
from conductor.tools.gateway import ToolGateway
from conductor.types.agents import AgentMode
from conductor.types.messages import ModelClient, ModelRequest, Turn, TurnResult
from conductor.types.tools import ToolCall, ToolDef, ToolKind, ToolResultData

if TYPE_CHECKING:
    from conductor.core.dispatcher import TaskDispatcher

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 50


class AgentLoop:
    """Drives one session through model steps until the model stops calling tools.

    Refused tool calls (denied or rejected) are returned to the model as
    error tool results; the turn itself continues.
    """

    def __init__(
        self,
        model: ModelClient,
        gateway: ToolGateway,
        skills: SkillLoader,
        *,
        dispatcher: TaskDispatcher | None = None,
        max_steps: int = DEFAULT_MAX_STEPS,
    ) -> None:
        self._model = model
        self._gateway = gateway
        self._skills = skills
        self._dispatcher = dispatcher
        self._max_steps = max_steps

    @property
    def gateway(self) -> ToolGateway:
        return self._gateway

    def attach_dispatcher(self, dispatcher: TaskDispatcher) -> None:
        self._dispatcher = dispatcher

    async def run_turn(
        self,
        session: Session,
        message: str | None,
        *,
        max_steps: int | None = None,
    ) -> TurnResult:
        """Run one user turn. Only one turn runs per session at a time.

        ``message`` may be None when the history already ends with the
        prompt (a freshly spawned subtask).
        """
        async with session.turn_lock:
            if message is not None:
                session.add_turn(Turn(role="user", content=message))
            budget = next(
                b for b in (max_steps, session.agent.max_steps, self._max_steps) if b is not None
            )
            return await self._run_steps(session, budget)

    async def _run_steps(self, session: Session, budget: int) -> TurnResult:
        steps = 0
        tool_calls = 0
        text = ""

        while steps < budget:
            steps += 1
            request = ModelRequest(
                agent=session.agent,
                instructions=session.context_blocks(),
                history=session.history,
                tools=self.tool_defs(session),
                session_id=session.session_id,
            )
            step = await self._model.next_step(request)
            session.add_turn(Turn(role="assistant", content=step.text, tool_calls=step.tool_calls))
            if step.text:
                text = step.text

            if step.done:
                return TurnResult(text, session.session_id, steps, tool_calls, "end_turn")

            for call in step.tool_calls:
                tool_calls += 1
                result = await self._execute(session, call)
                session.add_turn(Turn(
                    role="tool",
                    content=result.content,
                    tool_call_id=call.id,
                    name=call.name,
                    is_error=result.is_error,
                ))

        logger.warning("Session %s hit its step budget (%d)", session.session_id, budget)
        return TurnResult(text, session.session_id, steps, tool_calls, "max_steps")

    def tool_defs(self, session: Session) -> tuple[ToolDef, ...]:
        """Tools offered to the model for this session's agent."""
        caps = session.agent.tools
        defs = list(self._gateway.tool_defs(caps))
        registry = self._skills.registry
        if caps.enabled(ToolKind.SKILL) and registry.skills:
            defs.append(skill_definition(registry.skills.values()))
        if caps.enabled(ToolKind.TASK) and self._dispatcher is not None:
            subagents = [a for a in registry.agents.values() if a.mode is AgentMode.SUBAGENT]
            if subagents:
                defs.append(task_definition(subagents))
        return tuple(defs)

    async def _execute(self, session: Session, call: ToolCall) -> ToolResultData:
        try:
            kind = ToolKind.parse(call.name)
        except ValueError as exc:
            return ToolResultData(content=str(exc), is_error=True)

        logger.debug("Session %s calls %s %s", session.session_id, kind.value, call.args)
        try:
            match kind:
                case ToolKind.SKILL:
                    return await self._gateway.guard(
                        session, kind, call.args,
                        lambda args: self._load_skill(session, args),
                        resource_of=skill_resource,
                    )
                case ToolKind.TASK:
                    return await self._gateway.guard(
                        session, kind, call.args,
                        lambda args: self._run_task(session, args),
                        resource_of=task_resource,
                    )
                case _:
                    return await self._gateway.invoke(session, kind, call.args)
        except ToolCallError as exc:
            return ToolResultData(content=str(exc), is_error=True)

    async def _load_skill(self, session: Session, args: dict[str, Any]) -> ToolResultData:
        name = str(args.get("name", ""))
        if not name:
            return ToolResultData(content="name is required.", is_error=True)
        try:
            skill = self._skills.load_skill(session, name)
        except UnknownSkillError as exc:
            return ToolResultData(content=str(exc), is_error=True)
        return ToolResultData(content=f"Skill '{skill.name}' loaded: {skill.description}")

    async def _run_task(self, session: Session, args: dict[str, Any]) -> ToolResultData:
        if self._dispatcher is None:
            return ToolResultData(content="Task delegation is not available.", is_error=True)
        agent = str(args.get("agent", ""))
        prompt = str(args.get("prompt", ""))
        if not agent or not prompt:
            return ToolResultData(content="agent and prompt are required.", is_error=True)
        try:
            result = await self._dispatcher.run_task(agent, prompt, session)
        except UnknownAgentError as exc:
            return ToolResultData(content=str(exc), is_error=True)
        if not result.ok:
            return ToolResultData(content=str(result.error), is_error=True)
        return ToolResultData(content=result.result_text or "(no output)")
