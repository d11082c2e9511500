"""todowrite / todoread: the session's task list."""

from __future__ import annotations

import json
from typing import Any

from conductor.tools.base import BaseTool
from conductor.types.tools import ToolContext, ToolDef, ToolKind, ToolParam, ToolResultData

TODO_STATUSES = ("pending", "in_progress", "completed", "cancelled")
TODO_PRIORITIES = ("high", "medium", "low")

_WRITE_DEFINITION = ToolDef(
    name="todowrite",
    description=(
        "Replace the session todo list. Each item has content, status "
        f"({', '.join(TODO_STATUSES)}) and an optional priority "
        f"({', '.join(TODO_PRIORITIES)})."
    ),
    parameters=(
        ToolParam("todos", "array", "The complete new todo list."),
    ),
)

_READ_DEFINITION = ToolDef(
    name="todoread",
    description="Return the session todo list as JSON.",
)


def normalize_todos(raw: Any) -> list[dict[str, Any]]:
    """Validate a todo list. Raises ValueError on bad items."""
    if not isinstance(raw, list):
        raise ValueError("todos must be a list")
    todos: list[dict[str, Any]] = []
    for i, item in enumerate(raw, start=1):
        if not isinstance(item, dict) or not str(item.get("content", "")).strip():
            raise ValueError(f"todo #{i} needs non-empty content")
        status = item.get("status", "pending")
        if status not in TODO_STATUSES:
            raise ValueError(f"todo #{i} has invalid status {status!r}")
        priority = item.get("priority", "medium")
        if priority not in TODO_PRIORITIES:
            raise ValueError(f"todo #{i} has invalid priority {priority!r}")
        todos.append({
            "id": str(item.get("id", i)),
            "content": str(item["content"]).strip(),
            "status": status,
            "priority": priority,
        })
    return todos


class TodoWriteTool(BaseTool):
    kind = ToolKind.TODOWRITE

    @property
    def definition(self) -> ToolDef:
        return _WRITE_DEFINITION

    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        try:
            todos = normalize_todos(args.get("todos"))
        except ValueError as exc:
            return self._error(str(exc))
        ctx.todos[:] = todos
        open_items = sum(1 for t in todos if t["status"] in ("pending", "in_progress"))
        return self._ok(f"{len(todos)} todos saved ({open_items} open)")


class TodoReadTool(BaseTool):
    kind = ToolKind.TODOREAD

    @property
    def definition(self) -> ToolDef:
        return _READ_DEFINITION

    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        return self._ok(json.dumps(ctx.todos, indent=2))
