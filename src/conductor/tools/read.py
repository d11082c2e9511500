"""read: file contents with line numbers and an optional window."""

from __future__ import annotations

from typing import Any

from conductor.tools.base import BaseTool, resolve_path
from conductor.types.tools import ToolContext, ToolDef, ToolKind, ToolParam, ToolResultData

_MAX_LINE_LENGTH = 2000
_DEFAULT_LIMIT = 2000

_DEFINITION = ToolDef(
    name="read",
    description=(
        "Read a text file. Returns numbered lines. "
        "Use offset (1-based) and limit to page through large files."
    ),
    parameters=(
        ToolParam("file_path", "string", "Absolute or cwd-relative path of the file."),
        ToolParam("offset", "integer", "1-based line to start from.", required=False),
        ToolParam(
            "limit", "integer", f"Maximum lines to return (default {_DEFAULT_LIMIT}).",
            required=False,
        ),
    ),
)


class ReadTool(BaseTool):
    """Reads a file and returns its content with line numbers."""

    kind = ToolKind.READ
    resource_arg = "file_path"
    normalize_path = True

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        if not args.get("file_path"):
            return self._error("file_path is required.")
        path = resolve_path(args["file_path"], ctx)

        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return self._error(f"File not found: {path}")
        except IsADirectoryError:
            return self._error(f"Path is a directory, not a file: {path}")
        except PermissionError:
            return self._error(f"Permission denied: {path}")
        except UnicodeDecodeError:
            return self._error(f"Not a UTF-8 text file: {path}")

        lines = text.splitlines()
        start = max(0, int(args.get("offset") or 1) - 1)
        end = start + int(args.get("limit") or _DEFAULT_LIMIT)

        numbered = []
        for lineno, line in enumerate(lines[start:end], start=start + 1):
            if len(line) > _MAX_LINE_LENGTH:
                line = line[:_MAX_LINE_LENGTH] + " [truncated]"
            numbered.append(f"{lineno:>6}\t{line}")

        content = "\n".join(numbered)
        if end < len(lines):
            content += f"\n[...{len(lines) - end} more lines (offset={end + 1})]"
        return self._ok(content or f"(empty file: {path})")
