"""write: create or replace a file."""

from __future__ import annotations

from typing import Any

from conductor.tools.base import BaseTool, resolve_path
from conductor.types.tools import ToolContext, ToolDef, ToolKind, ToolParam, ToolResultData

_DEFINITION = ToolDef(
    name="write",
    description=(
        "Create a file or replace its whole content. "
        "Missing parent directories are created."
    ),
    parameters=(
        ToolParam("file_path", "string", "Absolute or cwd-relative path of the file."),
        ToolParam("content", "string", "Full new content of the file."),
    ),
)


class WriteTool(BaseTool):
    """Creates or overwrites a file."""

    kind = ToolKind.WRITE
    resource_arg = "file_path"
    normalize_path = True

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        if not args.get("file_path"):
            return self._error("file_path is required.")
        path = resolve_path(args["file_path"], ctx)
        content = str(args.get("content", ""))

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except PermissionError:
            return self._error(f"Permission denied writing to: {path}")
        except OSError as exc:
            return self._error(f"Could not write {path}: {exc}")

        size = len(content.encode("utf-8"))
        return self._ok(f"Wrote {path} ({size} bytes)")
