"""grep: regex search over file contents."""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import Any

from conductor.tools.base import BaseTool, is_ignored, resolve_path
from conductor.types.tools import ToolContext, ToolDef, ToolKind, ToolParam, ToolResultData

_DEFAULT_MAX_RESULTS = 50

_DEFINITION = ToolDef(
    name="grep",
    description=(
        "Search file contents for a regular expression. Matches are returned "
        "as 'path:line: text'. Binary files and cache directories are skipped."
    ),
    parameters=(
        ToolParam("pattern", "string", "Regular expression to search for."),
        ToolParam("path", "string", "File or directory to search (default: cwd).", required=False),
        ToolParam("include", "string", "Only search files matching this glob, e.g. '*.py'.", required=False),
        ToolParam(
            "max_results", "integer", f"Maximum matching lines (default {_DEFAULT_MAX_RESULTS}).",
            required=False, default=_DEFAULT_MAX_RESULTS,
        ),
    ),
)


def _is_binary(path: Path) -> bool:
    try:
        with open(path, "rb") as f:
            return b"\x00" in f.read(8192)
    except OSError:
        return True


def search(
    compiled: re.Pattern[str], root: Path, include: str | None, max_results: int,
) -> list[str]:
    """Walk ``root`` in sorted order and collect up to ``max_results`` matches."""
    if root.is_file():
        files = [root]
    else:
        files = sorted(
            p for p in root.rglob(include or "*") if p.is_file() and not is_ignored(p, root)
        )

    matches: list[str] = []
    for path in files:
        if _is_binary(path):
            continue
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            continue
        for lineno, line in enumerate(text.splitlines(), start=1):
            if compiled.search(line):
                matches.append(f"{path}:{lineno}: {line.rstrip()}")
                if len(matches) >= max_results:
                    return matches
    return matches


class GrepTool(BaseTool):
    """Searches file content for a regex pattern."""

    kind = ToolKind.GREP
    resource_arg = "path"
    normalize_path = True

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        pattern = args.get("pattern", "")
        if not pattern:
            return self._error("pattern is required.")
        try:
            compiled = re.compile(pattern)
        except re.error as exc:
            return self._error(f"Invalid regex pattern: {exc}")

        root = resolve_path(args.get("path"), ctx)
        if not root.exists():
            return self._error(f"Search path does not exist: {root}")

        try:
            max_results = int(args.get("max_results", _DEFAULT_MAX_RESULTS))
        except (TypeError, ValueError):
            max_results = _DEFAULT_MAX_RESULTS

        matches = await asyncio.to_thread(
            search, compiled, root, args.get("include") or args.get("glob"), max_results,
        )
        if not matches:
            return self._ok(f"No matches found for pattern '{pattern}' in {root}")

        result = "\n".join(matches)
        if len(matches) >= max_results:
            result += f"\n[Results limited to {max_results} matches]"
        return self._ok(result)
