"""Approval state machine for tool calls that resolve to ASK.

The gateway creates a ``PendingDecision`` token and suspends on the
``ApprovalBroker`` until someone approves, modifies, or rejects it. Tokens
are plain data (``to_dict``/``from_dict``) so an out-of-process front end can
hold them between request and response.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from conductor.types.permissions import PermissionLevel, PolicyRule

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PendingDecision:
    """A suspended tool call awaiting an operator response."""

    session_id: str
    agent: str
    tool: str
    resource: str
    rule: PolicyRule
    args: dict[str, Any] = field(default_factory=dict)
    token_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    created_at: float = field(default_factory=time.time)

    def matches(self, tool: str, resource: str) -> bool:
        return self.tool == tool and self.resource == resource

    def to_dict(self) -> dict[str, Any]:
        return {
            "token_id": self.token_id,
            "session_id": self.session_id,
            "agent": self.agent,
            "tool": self.tool,
            "resource": self.resource,
            "rule": self.rule.to_dict(),
            "args": dict(self.args),
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PendingDecision:
        raw_rule = data["rule"]
        rule = PolicyRule(
            source=raw_rule["source"],
            level=PermissionLevel(raw_rule["level"]),
            key=raw_rule.get("key"),
            pattern=raw_rule.get("pattern"),
            agent=raw_rule.get("agent"),
        )
        return cls(
            session_id=data["session_id"],
            agent=data["agent"],
            tool=data["tool"],
            resource=data["resource"],
            rule=rule,
            args=dict(data.get("args", {})),
            token_id=data["token_id"],
            created_at=float(data.get("created_at", time.time())),
        )


class ApprovalAction(Enum):
    APPROVE = "approve"
    MODIFY = "modify"
    REJECT = "reject"


@dataclass(frozen=True, slots=True)
class ApprovalResponse:
    """The operator's answer. ``args`` is only used with MODIFY."""

    action: ApprovalAction
    args: dict[str, Any] | None = None
    reason: str | None = None

    @classmethod
    def approve(cls) -> ApprovalResponse:
        return cls(ApprovalAction.APPROVE)

    @classmethod
    def reject(cls, reason: str | None = None) -> ApprovalResponse:
        return cls(ApprovalAction.REJECT, reason=reason)

    @classmethod
    def modify(cls, args: dict[str, Any]) -> ApprovalResponse:
        return cls(ApprovalAction.MODIFY, args=dict(args))


@runtime_checkable
class ApprovalCallback(Protocol):
    """Protocol for front ends that answer approval prompts."""

    async def request_approval(
        self, pending: PendingDecision, description: str,
    ) -> ApprovalResponse:
        """Ask the operator about a pending tool call."""
        ...


def describe_tool_call(tool: str, args: dict[str, Any]) -> str:
    """Build a human-readable one-line description of a tool call."""
    if tool == "bash" and "command" in args:
        return f"Run command: {args['command']}"
    if tool == "write" and "file_path" in args:
        content = args.get("content", "")
        lines = content.count("\n") + 1 if content else 0
        return f"Write {args['file_path']} ({lines} lines)"
    if tool == "edit" and "file_path" in args:
        return f"Edit {args['file_path']}"
    if tool == "read" and "file_path" in args:
        return f"Read {args['file_path']}"
    if tool in ("glob", "grep") and "pattern" in args:
        return f"Search {'files' if tool == 'glob' else 'content'}: {args['pattern']}"
    if tool == "list":
        return f"List {args.get('path', '.')}"
    if tool == "webfetch" and "url" in args:
        return f"Fetch URL: {args['url']}"
    if tool == "todowrite":
        return f"Update todo list ({len(args.get('todos', []))} items)"
    args_str = json.dumps(args, default=str)
    if len(args_str) > 80:
        args_str = args_str[:77] + "..."
    return f"{tool}({args_str})"


class ApprovalBroker:
    """Holds pending decisions and the futures suspended on them.

    With a ``callback`` configured, each request is answered by the callback
    (an interactive prompt). Without one, requests stay pending until
    ``resolve``/``approve``/``modify``/``reject`` is called. There is no
    implicit timeout.
    """

    def __init__(self, callback: ApprovalCallback | None = None) -> None:
        self._callback = callback
        self._pending: dict[str, tuple[PendingDecision, asyncio.Future[ApprovalResponse]]] = {}

    @property
    def pending(self) -> tuple[PendingDecision, ...]:
        return tuple(p for p, _ in self._pending.values())

    def get(self, token_id: str) -> PendingDecision | None:
        item = self._pending.get(token_id)
        return item[0] if item else None

    async def request(self, pending: PendingDecision) -> ApprovalResponse:
        """Suspend until the pending decision is answered."""
        description = describe_tool_call(pending.tool, pending.args)
        logger.info("approval requested [%s]: %s", pending.token_id, description)

        if self._callback is not None:
            return await self._callback.request_approval(pending, description)

        future: asyncio.Future[ApprovalResponse] = asyncio.get_running_loop().create_future()
        self._pending[pending.token_id] = (pending, future)
        try:
            return await future
        finally:
            self._pending.pop(pending.token_id, None)

    def resolve(self, token_id: str, response: ApprovalResponse) -> None:
        """Answer a pending decision. Raises KeyError for unknown tokens."""
        item = self._pending.get(token_id)
        if item is None:
            raise KeyError(f"No pending decision: {token_id}")
        _, future = item
        if not future.done():
            future.set_result(response)
        logger.info("approval [%s] -> %s", token_id, response.action.value)

    def approve(self, token_id: str) -> None:
        self.resolve(token_id, ApprovalResponse.approve())

    def modify(self, token_id: str, args: dict[str, Any]) -> None:
        self.resolve(token_id, ApprovalResponse.modify(args))

    def reject(self, token_id: str, reason: str | None = None) -> None:
        self.resolve(token_id, ApprovalResponse.reject(reason))

    def cancel_all(self, reason: str = "cancelled") -> int:
        """Reject every pending decision. Returns how many were pending."""
        count = 0
        for token_id in list(self._pending):
            self.reject(token_id, reason)
            count += 1
        return count


class StdinApprovalCallback:
    """Plain-text approval prompt using stdin/stdout."""

    async def request_approval(
        self, pending: PendingDecision, description: str,
    ) -> ApprovalResponse:
        """Prompt the user with a y/n question."""
        loop = asyncio.get_running_loop()
        prompt = f"\nAllow {pending.tool}? {description}\n(rule {pending.rule}) [y/n] > "
        try:
            answer = await loop.run_in_executor(None, lambda: input(prompt))
        except (EOFError, KeyboardInterrupt):
            return ApprovalResponse.reject("no answer")
        if answer.strip().lower() in ("y", "yes"):
            return ApprovalResponse.approve()
        return ApprovalResponse.reject("declined at prompt")
