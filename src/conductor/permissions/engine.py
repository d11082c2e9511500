"""Permission evaluation engine.

Evaluation order (first match wins):

0. Plan-only mode: a primary agent with ``bash`` or ``edit`` disabled is
   denied every mutating tool (``bash``, ``edit``, ``write``), whatever its
   policy says.
1. Capability: a tool switched off in the agent's ``tools`` block is denied.
2. Per-tool entry in the agent's ``permission`` block (``bash`` may use a
   pattern map matched against the command).
3. Agent entry for the tool's resource class.
4. Runtime-wide policy from settings.
5. Global default: DENY.

An approved ``PendingDecision`` may upgrade ASK to ALLOW for the exact tool
and resource it was issued for. It never upgrades DENY.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from conductor.types.agents import AgentDefinition
from conductor.types.permissions import (
    PermissionDecision,
    PermissionLevel,
    PermissionPolicy,
    PolicyRule,
)
from conductor.types.tools import ResourceClass, ToolKind

if TYPE_CHECKING:
    from conductor.permissions.approval import PendingDecision

logger = logging.getLogger(__name__)

# Tools a plan-only agent never gets, whichever class it disabled
PLAN_DENIED_TOOLS = frozenset({ToolKind.BASH, ToolKind.EDIT, ToolKind.WRITE})


class PermissionEngine:
    """Evaluates whether a tool call should be allowed, denied, or prompted.

    The engine is pure: it never blocks and never mutates state. Suspension
    on ASK is the gateway's job.
    """

    def __init__(self, defaults: PermissionPolicy | None = None) -> None:
        self._defaults = defaults or PermissionPolicy()

    @property
    def defaults(self) -> PermissionPolicy:
        return self._defaults

    def evaluate(
        self,
        agent: AgentDefinition,
        tool: ToolKind | str,
        resource: str,
        *,
        override: PendingDecision | None = None,
    ) -> PermissionDecision:
        """Resolve a decision for ``agent`` calling ``tool`` on ``resource``."""
        kind = ToolKind.parse(tool)
        decision = self._base_decision(agent, kind, resource)

        if (
            decision.needs_approval
            and override is not None
            and override.matches(kind.value, resource)
        ):
            decision = PermissionDecision(
                outcome=PermissionLevel.ALLOW,
                rule=PolicyRule(
                    source="override",
                    level=PermissionLevel.ALLOW,
                    key=kind.value,
                    pattern=decision.rule.pattern,
                    agent=agent.name,
                ),
                tool=kind.value,
                resource=resource,
            )

        logger.debug(
            "permission %s(%s) for %s -> %s by %s",
            kind.value, resource, agent.name, decision.outcome.value, decision.rule,
        )
        return decision

    def _base_decision(
        self, agent: AgentDefinition, kind: ToolKind, resource: str,
    ) -> PermissionDecision:
        def decide(
            level: PermissionLevel,
            source: str,
            key: str | None = None,
            pattern: str | None = None,
            owner: str | None = agent.name,
        ) -> PermissionDecision:
            rule = PolicyRule(source=source, level=level, key=key, pattern=pattern, agent=owner)
            return PermissionDecision(outcome=level, rule=rule, tool=kind.value, resource=resource)

        # 0. Plan-only hard override
        if agent.plan_only and kind in PLAN_DENIED_TOOLS:
            return decide(PermissionLevel.DENY, "mode", key=kind.value)

        # 1. Capability switched off
        if not agent.tools.enabled(kind):
            return decide(PermissionLevel.DENY, "capability", key=kind.value)

        resource_class: ResourceClass = kind.resource_class

        # 2. Per-tool entry, then 3. resource class entry
        for source, key in (("tool", kind.value), ("class", resource_class.value)):
            entry = agent.permission.get(key)
            if entry is None:
                continue
            resolved = entry.resolve(resource)
            if resolved is not None:
                level, pattern = resolved
                return decide(level, source, key=key, pattern=pattern)

        # 4. Runtime-wide policy
        for key in (kind.value, resource_class.value):
            entry = self._defaults.get(key)
            if entry is None:
                continue
            resolved = entry.resolve(resource)
            if resolved is not None:
                level, pattern = resolved
                return decide(level, "runtime", key=key, pattern=pattern, owner=None)

        # 5. Global default
        return decide(PermissionLevel.DENY, "default", owner=None)
