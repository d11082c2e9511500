"""glob: find files by pattern, newest first."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from conductor.tools.base import BaseTool, is_ignored, resolve_path
from conductor.types.tools import ToolContext, ToolDef, ToolKind, ToolParam, ToolResultData

_MAX_RESULTS = 200

_DEFINITION = ToolDef(
    name="glob",
    description=(
        "List files matching a glob pattern such as '**/*.py', newest first "
        f"(up to {_MAX_RESULTS}). VCS and cache directories are skipped."
    ),
    parameters=(
        ToolParam("pattern", "string", "Glob pattern relative to the search path."),
        ToolParam("path", "string", "Directory to search (default: cwd).", required=False),
    ),
)


class GlobTool(BaseTool):
    """Finds files by glob pattern."""

    kind = ToolKind.GLOB
    resource_arg = "path"
    normalize_path = True

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        pattern = args.get("pattern", "")
        if not pattern:
            return self._error("pattern is required.")
        if ".." in Path(pattern).parts:
            return self._error(f"Glob pattern may not leave the search path: {pattern!r}")

        root = resolve_path(args.get("path"), ctx)
        if not root.is_dir():
            return self._error(f"Search path is not a directory: {root}")

        try:
            matched: list[Path] = [
                p for p in root.glob(pattern) if p.is_file() and not is_ignored(p, root)
            ]
        except (ValueError, NotImplementedError) as exc:
            return self._error(f"Invalid glob pattern {pattern!r}: {exc}")

        if not matched:
            return self._ok(f"No files matched pattern '{pattern}' in {root}")

        matched.sort(key=lambda p: p.stat().st_mtime, reverse=True)
        lines = [str(p) for p in matched[:_MAX_RESULTS]]
        if len(matched) > _MAX_RESULTS:
            lines.append(f"[...{len(matched) - _MAX_RESULTS} more results not shown]")
        return self._ok("\n".join(lines))
