"""Terminal output for CLI commands."""

from __future__ import annotations

from collections.abc import Iterable

from rich.console import Console
from rich.table import Table

from conductor.definitions.registry import Registry
from conductor.errors import ConfigError
from conductor.types.messages import SubtaskResult, TurnResult

console = Console()
err_console = Console(stderr=True)


def print_error(message: str) -> None:
    err_console.print(f"[bold red]Error:[/bold red] {message}", highlight=False, soft_wrap=True)


def print_warnings(warnings: Iterable[ConfigError]) -> int:
    count = 0
    for warning in warnings:
        err_console.print(f"[yellow]warning:[/yellow] {warning}", highlight=False, soft_wrap=True)
        count += 1
    return count


def print_agents(registry: Registry) -> None:
    table = Table(title="Agents", title_justify="left")
    table.add_column("Name", style="bold")
    table.add_column("Mode")
    table.add_column("Disabled tools")
    table.add_column("Description")
    for agent in registry.agents.values():
        disabled = ", ".join(k for k, v in agent.tools.entries if not v) or "-"
        table.add_row(agent.name, agent.mode.value, disabled, agent.description)
    console.print(table)


def print_skills(registry: Registry) -> None:
    table = Table(title="Skills", title_justify="left")
    table.add_column("Name", style="bold")
    table.add_column("Description")
    for skill in registry.skills.values():
        table.add_row(skill.name, skill.description)
    console.print(table)


def print_commands(registry: Registry) -> None:
    table = Table(title="Commands", title_justify="left")
    table.add_column("Name", style="bold")
    table.add_column("Agent")
    table.add_column("Flags")
    table.add_column("Description")
    for command in registry.commands.values():
        flags = [f for f, on in (("subtask", command.subtask), ("read-only", command.read_only)) if on]
        table.add_row(command.name, command.agent or "-", ", ".join(flags) or "-", command.description)
    console.print(table)


def print_result(result: TurnResult | SubtaskResult) -> None:
    """Print the final text, then a one-line summary on stderr."""
    match result:
        case SubtaskResult(result_text=text, session_id=sid, steps=steps, audit_entries=entries):
            if text:
                console.print(text, highlight=False, markup=False)
            err_console.print(
                f"[dim]Subtask: {sid} | Steps: {steps} | Audit entries: {len(entries)}[/dim]",
            )
        case TurnResult(text=text, session_id=sid, steps=steps, tool_calls=tc, stop_reason=reason):
            if text:
                console.print(text, highlight=False, markup=False)
            summary = f"Session: {sid} | Steps: {steps} | Tools: {tc}"
            if reason != "end_turn":
                summary += f" | Stopped: {reason}"
            err_console.print(f"[dim]{summary}[/dim]")
