"""list: directory tree listing."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from conductor.tools.base import IGNORED_DIRS, BaseTool, resolve_path
from conductor.types.tools import ToolContext, ToolDef, ToolKind, ToolParam, ToolResultData

_MAX_ENTRIES = 500
_DEFAULT_DEPTH = 2

_DEFINITION = ToolDef(
    name="list",
    description=(
        "List a directory as an indented tree. Directories end with '/'. "
        "VCS and cache directories are skipped."
    ),
    parameters=(
        ToolParam("path", "string", "Directory to list (default: cwd).", required=False),
        ToolParam(
            "depth", "integer", f"How many levels to descend (default {_DEFAULT_DEPTH}).",
            required=False, default=_DEFAULT_DEPTH,
        ),
    ),
)


class ListTool(BaseTool):
    """Lists directory contents."""

    kind = ToolKind.LIST
    resource_arg = "path"
    normalize_path = True

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        root = resolve_path(args.get("path"), ctx)
        if not root.is_dir():
            return self._error(f"Not a directory: {root}")
        try:
            depth = max(1, int(args.get("depth", _DEFAULT_DEPTH)))
        except (TypeError, ValueError):
            depth = _DEFAULT_DEPTH

        lines = [f"{root}/"]
        self._walk(root, depth, 1, lines)
        if len(lines) > _MAX_ENTRIES:
            extra = len(lines) - _MAX_ENTRIES
            lines = lines[:_MAX_ENTRIES] + [f"[...{extra} more entries]"]
        return self._ok("\n".join(lines))

    def _walk(self, directory: Path, max_depth: int, level: int, out: list[str]) -> None:
        try:
            children = sorted(directory.iterdir(), key=lambda p: (not p.is_dir(), p.name))
        except PermissionError:
            out.append("  " * level + "[permission denied]")
            return
        for child in children:
            if child.name in IGNORED_DIRS:
                continue
            if child.is_dir():
                out.append("  " * level + f"{child.name}/")
                if level < max_depth:
                    self._walk(child, max_depth, level + 1, out)
            else:
                out.append("  " * level + child.name)
            if len(out) > _MAX_ENTRIES:
                return
