"""Rich-formatted approval prompt for tool calls."""

from __future__ import annotations

import asyncio
import json

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from conductor.permissions.approval import ApprovalResponse, PendingDecision


class RichApprovalCallback:
    """Interactive approve / edit / reject prompt.

    Answering ``e`` lets the operator type replacement arguments as JSON;
    the gateway re-checks the modified call before running it.
    """

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console(stderr=True)

    async def request_approval(
        self, pending: PendingDecision, description: str,
    ) -> ApprovalResponse:
        title = Text(f" ◆ {pending.tool} ", style="bold #fbbf24")
        body = Group(
            Text(description, style="#94a3b8"),
            Text(f"agent {pending.agent} · rule {pending.rule}", style="#7c7c8a"),
        )
        self._console.print()
        self._console.print(Panel(
            body, title=title, border_style="#fbbf24", expand=False, padding=(0, 1),
        ))

        prompt_text = (
            "[bold #fbbf24]Allow?[/bold #fbbf24] "
            "[#7c7c8a](y)es / (n)o / (e)dit[/#7c7c8a] › "
        )
        answer = await self._ask(prompt_text)
        if answer is None:
            return ApprovalResponse.reject("no answer")

        match answer.strip().lower():
            case "y" | "yes":
                return ApprovalResponse.approve()
            case "e" | "edit":
                return await self._edit(pending)
            case _:
                return ApprovalResponse.reject("declined at prompt")

    async def _edit(self, pending: PendingDecision) -> ApprovalResponse:
        self._console.print(
            f"[#7c7c8a]current arguments:[/#7c7c8a] {json.dumps(pending.args)}",
        )
        raw = await self._ask("[bold #fbbf24]New arguments (JSON)[/bold #fbbf24] › ")
        if not raw:
            return ApprovalResponse.reject("edit cancelled")
        try:
            args = json.loads(raw)
        except json.JSONDecodeError as exc:
            self._console.print(f"[red]Invalid JSON: {exc}[/red]")
            return ApprovalResponse.reject("invalid edited arguments")
        if not isinstance(args, dict):
            self._console.print("[red]Arguments must be a JSON object[/red]")
            return ApprovalResponse.reject("invalid edited arguments")
        return ApprovalResponse.modify(args)

    async def _ask(self, prompt_text: str) -> str | None:
        loop = asyncio.get_running_loop()
        try:
            self._console.print(prompt_text, end="")
            return await loop.run_in_executor(None, lambda: input(""))
        except (EOFError, KeyboardInterrupt):
            self._console.print()
            return None
