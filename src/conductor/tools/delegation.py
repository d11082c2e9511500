"""Definitions of the ``task`` and ``skill`` capabilities.

Both are executed by the turn loop (a subtask, a skill injection) rather
than through the gateway's dispatch table, but are offered to the model as
ordinary tools and checked through ``ToolGateway.guard``.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from conductor.types.agents import AgentDefinition
from conductor.types.skills import SkillDefinition
from conductor.types.tools import ToolDef, ToolParam


def task_definition(agents: Iterable[AgentDefinition]) -> ToolDef:
    """The ``task`` tool, listing the agents a task may be delegated to."""
    agents = list(agents)
    listing = "\n".join(f"- {a.name}: {a.description}" for a in agents)
    return ToolDef(
        name="task",
        description=(
            "Delegate a self-contained piece of work to another agent. It runs "
            "in a fresh context and only its final answer comes back.\n"
            f"Available agents:\n{listing or '(none)'}"
        ),
        parameters=(
            ToolParam(
                "agent", "string", "Name of the agent to run the task.",
                enum=tuple(a.name for a in agents) or None,
            ),
            ToolParam("prompt", "string", "Full instructions for the task."),
            ToolParam("description", "string", "Short label for the task.", required=False),
        ),
    )


def skill_definition(skills: Iterable[SkillDefinition]) -> ToolDef:
    """The ``skill`` tool, listing loadable skills."""
    skills = list(skills)
    listing = "\n".join(f"- {s.name}: {s.description}" for s in skills)
    return ToolDef(
        name="skill",
        description=(
            "Load a skill's instructions into this conversation. Loading the "
            f"same skill twice has no effect.\nAvailable skills:\n{listing or '(none)'}"
        ),
        parameters=(
            ToolParam(
                "name", "string", "Name of the skill to load.",
                enum=tuple(s.name for s in skills) or None,
            ),
        ),
    )


def task_resource(args: dict[str, Any]) -> str:
    return str(args.get("agent") or "*")


def skill_resource(args: dict[str, Any]) -> str:
    return str(args.get("name") or "*")
