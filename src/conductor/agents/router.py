"""Agent selection for top-level turns and derivation of subtask agents."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping

from conductor.core.session import Session
from conductor.definitions.registry import Registry
from conductor.errors import UnknownAgentError
from conductor.types.agents import AgentDefinition, AgentMode
from conductor.types.commands import CommandDefinition
from conductor.types.messages import Turn
from conductor.types.tools import ToolKind

logger = logging.getLogger(__name__)

# Tools a read_only command takes away from its subtask agent
READ_ONLY_REVOKED = (ToolKind.EDIT, ToolKind.WRITE, ToolKind.BASH, ToolKind.TODOWRITE)


class AgentRouter:
    """Picks the agent for a turn and builds child sessions for subtasks.

    Usage::

        router = AgentRouter(registry, default_agent="build")
        agent = router.select_agent(None)
        child = router.spawn_subagent(command, "HEAD~1", parent_session)
    """

    def __init__(self, registry: Registry, default_agent: str | None = None) -> None:
        self._registry = registry
        self._default_agent = default_agent

    @property
    def registry(self) -> Registry:
        return self._registry

    def select_agent(
        self,
        requested: str | None,
        agents: Mapping[str, AgentDefinition] | None = None,
    ) -> AgentDefinition:
        """Return the requested agent, or the default primary agent.

        The default is the configured ``default_agent``, else the only
        primary agent, else the alphabetically first primary agent. Only
        primary agents run top-level turns; a subagent name raises
        UnknownAgentError like an absent one.
        """
        pool = self._registry.agents if agents is None else agents
        primaries = sorted(n for n, a in pool.items() if a.mode is AgentMode.PRIMARY)

        name = requested or self._default_agent
        if name:
            if name not in primaries:
                if name in pool:
                    logger.debug("Agent %r is a subagent; not selectable for a top-level turn", name)
                raise UnknownAgentError(name, primaries)
            return pool[name]

        if not primaries:
            raise UnknownAgentError("<primary>", list(pool))
        if len(primaries) > 1:
            logger.debug("No default agent configured; picking %r of %s", primaries[0], primaries)
        return pool[primaries[0]]

    def derive_agent(self, command: CommandDefinition, parent: AgentDefinition) -> AgentDefinition:
        """The frozen subagent record a command's subtask runs as."""
        target = self._registry.get_agent(command.agent) if command.agent else parent

        tools = parent.tools.intersect(target.tools).intersect(command.tools)
        if command.read_only:
            tools = tools.without(*READ_ONLY_REVOKED)

        return dataclasses.replace(
            target,
            mode=AgentMode.SUBAGENT,
            tools=tools,
            model=command.model or target.model,
        )

    def spawn_subagent(self, command: CommandDefinition, args: str, parent: Session) -> Session:
        """Create the child session for a subtask.

        Its first history entry is the rendered command template.
        """
        agent = self.derive_agent(command, parent.agent)
        child = parent.spawn_child(agent)
        child.add_turn(Turn(role="user", content=command.render(args)))
        logger.info(
            "Spawned subtask %s for /%s as %s (parent %s)",
            child.session_id, command.name, agent.name, parent.session_id,
        )
        return child
