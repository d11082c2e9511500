"""ToolGateway: the only path from an agent to the filesystem, shell, or network.

Every invocation resolves a permission decision first, may suspend for
approval, executes through a fixed dispatch table, and leaves exactly one
audit entry behind.

Usage::

    gateway = ToolGateway(PermissionEngine(), ApprovalBroker())
    result = await gateway.read(session, file_path="README.md")
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import TYPE_CHECKING, Any

from conductor.audit.logger import AuditEntry, AuditOutcome
from conductor.errors import PermissionDeniedError, UserRejectedError
from conductor.observability.tracing import span
from conductor.permissions.approval import ApprovalAction, ApprovalBroker, PendingDecision
from conductor.permissions.engine import PermissionEngine
from conductor.tools.base import BaseTool
from conductor.tools.bash import BashTool
from conductor.tools.edit import EditTool
from conductor.tools.glob import GlobTool
from conductor.tools.grep import GrepTool
from conductor.tools.listing import ListTool
from conductor.tools.read import ReadTool
from conductor.tools.todo import TodoReadTool, TodoWriteTool
from conductor.tools.web import WebFetchTool
from conductor.tools.write import WriteTool
from conductor.types.agents import ToolCapabilitySet
from conductor.types.permissions import PermissionDecision
from conductor.types.tools import ToolDef, ToolKind, ToolResultData

if TYPE_CHECKING:
    from conductor.core.session import Session

logger = logging.getLogger(__name__)

# Capabilities the turn loop handles itself rather than the gateway.
LOOP_HANDLED = frozenset({ToolKind.TASK, ToolKind.SKILL})


def default_tools() -> list[BaseTool]:
    return [
        ReadTool(),
        WriteTool(),
        EditTool(),
        BashTool(),
        GlobTool(),
        GrepTool(),
        ListTool(),
        WebFetchTool(),
        TodoWriteTool(),
        TodoReadTool(),
    ]


class ToolGateway:
    """Permission-checked, audited dispatch of tool calls."""

    def __init__(
        self,
        engine: PermissionEngine | None = None,
        broker: ApprovalBroker | None = None,
        tools: Iterable[BaseTool] | None = None,
    ) -> None:
        self._engine = engine or PermissionEngine()
        self._broker = broker or ApprovalBroker()
        self._table: dict[ToolKind, BaseTool] = {}
        for tool in tools if tools is not None else default_tools():
            self._table[tool.kind] = tool

        missing = [k.value for k in ToolKind if k not in LOOP_HANDLED and k not in self._table]
        if missing:
            raise ValueError(f"Gateway dispatch table is missing tools: {', '.join(missing)}")

    @property
    def engine(self) -> PermissionEngine:
        return self._engine

    @property
    def broker(self) -> ApprovalBroker:
        return self._broker

    def handles(self, kind: ToolKind) -> bool:
        return kind in self._table

    def describe_resource(
        self, kind: ToolKind | str, args: dict[str, Any], session: Session | None = None,
    ) -> str:
        ctx = session.tool_context() if session is not None else None
        return self._table[ToolKind.parse(kind)].resource(args, ctx)

    def tool_defs(self, caps: ToolCapabilitySet) -> tuple[ToolDef, ...]:
        """Definitions of the gateway tools enabled by ``caps``."""
        return tuple(
            tool.definition for kind, tool in self._table.items() if caps.enabled(kind)
        )

    # ------------------------------------------------------------------
    # Core path
    # ------------------------------------------------------------------

    async def invoke(
        self, session: Session, kind: ToolKind | str, args: dict[str, Any] | None = None,
    ) -> ToolResultData:
        """Check, optionally suspend for approval, execute, and audit one call.

        Raises PermissionDeniedError or UserRejectedError when the call is
        refused. Execution failures come back as error results.
        """
        kind = ToolKind.parse(kind)
        if kind not in self._table:
            raise ValueError(f"{kind.value} is not a gateway tool")
        tool = self._table[kind]
        ctx = session.tool_context()

        async def run(checked: dict[str, Any]) -> ToolResultData:
            return await tool.execute(checked, ctx)

        def resource_of(checked: dict[str, Any]) -> str:
            return tool.resource(checked, ctx)

        return await self.guard(session, kind, args, run, resource_of=resource_of)

    async def guard(
        self,
        session: Session,
        kind: ToolKind,
        args: dict[str, Any] | None,
        runner: Callable[[dict[str, Any]], Awaitable[ToolResultData]],
        *,
        resource_of: Callable[[dict[str, Any]], str],
    ) -> ToolResultData:
        """Permission, approval, and audit around an arbitrary runner.

        The turn loop uses this for the capabilities it executes itself
        (``task``, ``skill``) so they follow the same path as gateway tools.
        """
        args = dict(args or {})
        resource = resource_of(args)
        agent = session.agent

        with span("conductor.tool", {
            "tool.name": kind.value,
            "tool.resource": resource,
            "session.id": session.session_id,
            "agent.name": agent.name,
        }) as s:
            decision = self._engine.evaluate(agent, kind, resource)
            asked = False

            if decision.needs_approval:
                asked = True
                pending = PendingDecision(
                    session_id=session.session_id,
                    agent=agent.name,
                    tool=kind.value,
                    resource=resource,
                    rule=decision.rule,
                    args=args,
                )
                try:
                    response = await self._broker.request(pending)
                except asyncio.CancelledError:
                    self._audit(session, decision, AuditOutcome.CANCELLED, asked=True,
                                detail="cancelled while awaiting approval")
                    raise

                match response.action:
                    case ApprovalAction.REJECT:
                        self._audit(session, decision, AuditOutcome.REJECTED, asked=True,
                                    detail=response.reason or "")
                        raise UserRejectedError(
                            kind.value, resource, decision.rule, response.reason,
                        )
                    case ApprovalAction.MODIFY:
                        args = dict(response.args or {})
                        resource = resource_of(args)
                        pending = PendingDecision(
                            session_id=session.session_id,
                            agent=agent.name,
                            tool=kind.value,
                            resource=resource,
                            rule=decision.rule,
                            args=args,
                            token_id=pending.token_id,
                        )
                        s.set_attribute("tool.resource", resource)
                decision = self._engine.evaluate(agent, kind, resource, override=pending)

            if not decision.allowed:
                self._audit(session, decision, AuditOutcome.DENIED, asked=asked)
                s.set_attribute("tool.outcome", AuditOutcome.DENIED.value)
                raise PermissionDeniedError(kind.value, resource, decision.rule)

            try:
                result = await runner(args)
            except asyncio.CancelledError:
                self._audit(session, decision, AuditOutcome.CANCELLED, asked=asked)
                raise
            except Exception as exc:  # noqa: BLE001
                logger.exception("tool %s raised", kind.value)
                result = ToolResultData(
                    content=f"Tool '{kind.value}' raised an unexpected error: {exc}",
                    is_error=True,
                )

            outcome = AuditOutcome.ERROR if result.is_error else AuditOutcome.SUCCESS
            self._audit(session, decision, outcome, asked=asked,
                        detail=result.content[:200] if result.is_error else "")
            s.set_attribute("tool.outcome", outcome.value)
            return result

    def _audit(
        self,
        session: Session,
        decision: PermissionDecision,
        outcome: AuditOutcome,
        *,
        asked: bool = False,
        detail: str = "",
    ) -> None:
        entry = AuditEntry.from_decision(
            decision,
            outcome,
            session_id=session.session_id,
            agent=session.agent.name,
            asked=asked,
            detail=detail,
        )
        session.audit.append(entry)
        logger.debug("audit %s(%s) -> %s", entry.tool, entry.resource, outcome.value)

    # ------------------------------------------------------------------
    # Per-tool operations
    # ------------------------------------------------------------------

    async def read(self, session: Session, file_path: str, **kwargs: Any) -> ToolResultData:
        return await self.invoke(session, ToolKind.READ, {"file_path": file_path, **kwargs})

    async def write(self, session: Session, file_path: str, content: str) -> ToolResultData:
        return await self.invoke(
            session, ToolKind.WRITE, {"file_path": file_path, "content": content},
        )

    async def edit(
        self,
        session: Session,
        file_path: str,
        old_string: str,
        new_string: str,
        replace_all: bool = False,
    ) -> ToolResultData:
        return await self.invoke(session, ToolKind.EDIT, {
            "file_path": file_path,
            "old_string": old_string,
            "new_string": new_string,
            "replace_all": replace_all,
        })

    async def exec(
        self, session: Session, command: str, timeout: int | None = None,
    ) -> ToolResultData:
        args: dict[str, Any] = {"command": command}
        if timeout is not None:
            args["timeout"] = timeout
        return await self.invoke(session, ToolKind.BASH, args)

    async def glob(
        self, session: Session, pattern: str, path: str | None = None,
    ) -> ToolResultData:
        return await self.invoke(session, ToolKind.GLOB, {"pattern": pattern, "path": path})

    async def grep(
        self, session: Session, pattern: str, path: str | None = None, **kwargs: Any,
    ) -> ToolResultData:
        return await self.invoke(
            session, ToolKind.GREP, {"pattern": pattern, "path": path, **kwargs},
        )

    async def list(self, session: Session, path: str | None = None, depth: int = 2) -> ToolResultData:
        return await self.invoke(session, ToolKind.LIST, {"path": path, "depth": depth})

    async def webfetch(self, session: Session, url: str, **kwargs: Any) -> ToolResultData:
        return await self.invoke(session, ToolKind.WEBFETCH, {"url": url, **kwargs})

    async def todowrite(self, session: Session, todos: list[dict[str, Any]]) -> ToolResultData:
        return await self.invoke(session, ToolKind.TODOWRITE, {"todos": todos})

    async def todoread(self, session: Session) -> ToolResultData:
        return await self.invoke(session, ToolKind.TODOREAD, {})
