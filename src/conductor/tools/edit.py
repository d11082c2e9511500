"""edit: exact string replacement inside a file."""

from __future__ import annotations

from typing import Any

from conductor.tools.base import BaseTool, resolve_path
from conductor.types.tools import ToolContext, ToolDef, ToolKind, ToolParam, ToolResultData

_DEFINITION = ToolDef(
    name="edit",
    description=(
        "Replace old_string with new_string in a file. old_string must occur "
        "exactly once unless replace_all is true."
    ),
    parameters=(
        ToolParam("file_path", "string", "Absolute or cwd-relative path of the file."),
        ToolParam("old_string", "string", "Exact text to replace."),
        ToolParam("new_string", "string", "Replacement text."),
        ToolParam(
            "replace_all", "boolean", "Replace every occurrence.",
            required=False, default=False,
        ),
    ),
)


class EditTool(BaseTool):
    """Performs exact string replacement in a file."""

    kind = ToolKind.EDIT
    resource_arg = "file_path"
    normalize_path = True

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        if not args.get("file_path"):
            return self._error("file_path is required.")
        for required in ("old_string", "new_string"):
            if required not in args:
                return self._error(f"{required} is required.")

        old, new = str(args["old_string"]), str(args["new_string"])
        if not old:
            return self._error("old_string must not be empty; use write to create a file.")
        if old == new:
            return self._error("old_string and new_string must differ.")

        path = resolve_path(args["file_path"], ctx)
        try:
            original = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return self._error(f"File not found: {path}")
        except (IsADirectoryError, PermissionError, UnicodeDecodeError) as exc:
            return self._error(f"Cannot edit {path}: {exc}")

        count = original.count(old)
        if count == 0:
            return self._error(f"old_string not found in {path}")
        if count > 1 and not args.get("replace_all"):
            return self._error(
                f"old_string occurs {count} times in {path}; "
                "add surrounding context or set replace_all=true."
            )

        updated = original.replace(old, new) if args.get("replace_all") else original.replace(old, new, 1)
        try:
            path.write_text(updated, encoding="utf-8")
        except OSError as exc:
            return self._error(f"Could not write {path}: {exc}")

        replaced = count if args.get("replace_all") else 1
        return self._ok(f"Made {replaced} replacement(s) in {path}")
