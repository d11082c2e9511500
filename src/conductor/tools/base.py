"""Base tool class with shared logic."""

from __future__ import annotations

import posixpath
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, ClassVar

from conductor.types.tools import ToolContext, ToolDef, ToolKind, ToolResultData

# Directories skipped by the search tools.
IGNORED_DIRS = frozenset({".git", "node_modules", "__pycache__", ".venv"})


class BaseTool(ABC):
    """Base class for all gateway tools.

    ``resource_arg`` names the argument a permission pattern is matched
    against (the file path, the command, the URL). Tools with
    ``normalize_path`` set normalise that argument with :func:`path_resource`.
    """

    kind: ClassVar[ToolKind]
    resource_arg: ClassVar[str | None] = None
    normalize_path: ClassVar[bool] = False

    @property
    @abstractmethod
    def definition(self) -> ToolDef:
        ...

    @abstractmethod
    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        ...

    def resource(self, args: dict[str, Any], ctx: ToolContext | None = None) -> str:
        """The string a permission rule is evaluated against."""
        if self.resource_arg is None:
            return "*"
        value = args.get(self.resource_arg)
        if value in (None, ""):
            return "*"
        if self.normalize_path:
            return path_resource(str(value), ctx)
        return str(value)

    def _error(self, msg: str) -> ToolResultData:
        return ToolResultData(content=msg, is_error=True)

    def _ok(self, content: str) -> ToolResultData:
        return ToolResultData(content=content)


def resolve_path(raw: str | None, ctx: ToolContext) -> Path:
    """Absolute path for a tool argument, relative to the session cwd."""
    if not raw:
        return ctx.cwd
    path = Path(raw).expanduser()
    return path if path.is_absolute() else ctx.cwd / path


def path_resource(raw: str, ctx: ToolContext | None = None) -> str:
    """Permission resource for a path argument.

    Paths inside the session cwd become cwd-relative POSIX strings with
    ``..`` collapsed. A path that escapes the cwd is returned absolute, so a
    relative pattern such as ``src/*`` can never match it. Without a context
    the path is only normalised lexically.
    """
    if ctx is None:
        return posixpath.normpath(Path(raw).as_posix())
    root = ctx.cwd.resolve()
    path = resolve_path(raw, ctx).resolve()
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


def is_ignored(path: Path, root: Path) -> bool:
    try:
        rel = path.relative_to(root)
    except ValueError:
        return False
    return any(part in IGNORED_DIRS for part in rel.parts)
