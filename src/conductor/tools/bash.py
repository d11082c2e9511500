"""bash: run a shell command in its own process group."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import signal
from typing import Any

from conductor.tools.base import BaseTool
from conductor.types.tools import ToolContext, ToolDef, ToolKind, ToolParam, ToolResultData

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT_MS = 120_000
_MAX_TIMEOUT_MS = 600_000
_MAX_OUTPUT_CHARS = 30_000
_KILL_GRACE_SEC = 2.0

_DEFINITION = ToolDef(
    name="bash",
    description=(
        "Run a shell command in the session working directory and return "
        "combined stdout and stderr. Timeout is in milliseconds "
        f"(default {_DEFAULT_TIMEOUT_MS}, max {_MAX_TIMEOUT_MS})."
    ),
    parameters=(
        ToolParam("command", "string", "The shell command to run."),
        ToolParam(
            "timeout", "integer", "Milliseconds before the command is killed.",
            required=False, default=_DEFAULT_TIMEOUT_MS,
        ),
    ),
)


async def terminate_group(proc: asyncio.subprocess.Process, grace: float = _KILL_GRACE_SEC) -> None:
    """SIGTERM the process group, then SIGKILL it if it outlives ``grace``."""
    if proc.returncode is not None:
        return
    try:
        pgid = os.getpgid(proc.pid)
    except ProcessLookupError:
        return

    with contextlib.suppress(ProcessLookupError):
        os.killpg(pgid, signal.SIGTERM)
    try:
        await asyncio.wait_for(proc.wait(), timeout=grace)
        return
    except TimeoutError:
        pass
    logger.debug("process group %d ignored SIGTERM, sending SIGKILL", pgid)
    with contextlib.suppress(ProcessLookupError):
        os.killpg(pgid, signal.SIGKILL)
    await proc.wait()


class BashTool(BaseTool):
    """Executes shell commands and returns their output."""

    kind = ToolKind.BASH
    resource_arg = "command"

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        command = str(args.get("command", "")).strip()
        if not command:
            return self._error("command is required.")

        try:
            timeout_ms = int(args.get("timeout", _DEFAULT_TIMEOUT_MS))
        except (TypeError, ValueError):
            timeout_ms = _DEFAULT_TIMEOUT_MS
        timeout_ms = max(1, min(timeout_ms, _MAX_TIMEOUT_MS))

        try:
            proc = await asyncio.create_subprocess_shell(
                command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                cwd=str(ctx.cwd),
                start_new_session=True,
            )
        except OSError as exc:
            return self._error(f"Failed to start process: {exc}")

        try:
            stdout_bytes, _ = await asyncio.wait_for(
                proc.communicate(), timeout=timeout_ms / 1000.0,
            )
        except TimeoutError:
            await terminate_group(proc)
            return self._error(f"Command timed out after {timeout_ms} ms and was killed: {command}")
        except asyncio.CancelledError:
            await asyncio.shield(terminate_group(proc))
            raise

        output = stdout_bytes.decode("utf-8", errors="replace") if stdout_bytes else ""
        if len(output) > _MAX_OUTPUT_CHARS:
            dropped = len(output) - _MAX_OUTPUT_CHARS
            output = output[:_MAX_OUTPUT_CHARS] + f"\n[...{dropped} characters truncated]"
        if not output.strip():
            output = "Command completed with no output"

        exit_code = proc.returncode or 0
        if exit_code != 0:
            return self._error(output.rstrip("\n") + f"\n[Exit code: {exit_code}]")
        return self._ok(output)
