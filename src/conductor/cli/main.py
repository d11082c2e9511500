"""CLI entry point for Conductor."""

from __future__ import annotations

import asyncio
import importlib
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import click

from conductor.cli.output import (
    print_agents,
    print_commands,
    print_error,
    print_result,
    print_skills,
    print_warnings,
)
from conductor.core.config import load_settings
from conductor.core.engine import Runtime
from conductor.errors import ConfigError, SubtaskTimeoutError, UnknownNameError
from conductor.permissions.approval import ApprovalBroker, StdinApprovalCallback
from conductor.types.config import RuntimeSettings
from conductor.types.messages import ModelClient, SubtaskResult

EXIT_CONFIG_ERROR = 2
EXIT_UNKNOWN_NAME = 3
EXIT_SUBTASK_FAILED = 4


@contextmanager
def _exit_on_error() -> Iterator[None]:
    """Map the error taxonomy onto process exit codes."""
    try:
        yield
    except ConfigError as exc:
        print_error(str(exc))
        raise SystemExit(EXIT_CONFIG_ERROR) from exc
    except UnknownNameError as exc:
        print_error(str(exc))
        raise SystemExit(EXIT_UNKNOWN_NAME) from exc
    except SubtaskTimeoutError as exc:
        print_error(str(exc))
        raise SystemExit(EXIT_SUBTASK_FAILED) from exc


def load_model(spec: str) -> ModelClient:
    """Import a ModelClient from ``module:attr``. Classes and factories are called once."""
    module_name, sep, attr = spec.partition(":")
    if not sep or not module_name or not attr:
        raise click.UsageError(f"--model must look like 'module:attr', got {spec!r}")
    try:
        module = importlib.import_module(module_name)
        target: Any = getattr(module, attr)
    except (ImportError, AttributeError) as exc:
        raise click.UsageError(f"Cannot load model {spec!r}: {exc}") from exc

    if isinstance(target, type) or (callable(target) and not isinstance(target, ModelClient)):
        target = target()
    if not isinstance(target, ModelClient):
        raise click.UsageError(f"{spec!r} is not a ModelClient (needs async next_step)")
    return target


def _create_broker(use_rich: bool) -> ApprovalBroker:
    if use_rich:
        from conductor.ui.approval import RichApprovalCallback
        return ApprovalBroker(RichApprovalCallback())
    return ApprovalBroker(StdinApprovalCallback())


def _settings(ctx: click.Context) -> RuntimeSettings:
    obj = ctx.ensure_object(dict)
    if "settings" not in obj:
        obj["settings"] = load_settings(
            obj.get("config_dir"),
            default_agent=obj.get("agent"),
            strict=obj.get("strict"),
            model=obj.get("model"),
        )
    return obj["settings"]


def _runtime(ctx: click.Context, *, with_model: bool) -> Runtime:
    """Build and load a Runtime, printing loader warnings."""
    obj = ctx.ensure_object(dict)
    settings = _settings(ctx)

    if with_model:
        if not settings.model:
            raise click.UsageError(
                "No model configured: pass --model module:attr or set CONDUCTOR_MODEL",
            )
        model = load_model(settings.model)
    else:
        model = _NoModel()

    runtime = Runtime(
        settings,
        model,
        broker=_create_broker(obj.get("rich", False)),
        cwd=obj.get("cwd") or Path.cwd(),
    )
    result = runtime.load()
    print_warnings(result.warnings)
    return runtime


class _NoModel:
    """Placeholder for commands that never reach the model."""

    async def next_step(self, request: Any) -> Any:
        raise RuntimeError("no model configured")


@click.group()
@click.option("--config-dir", "-c", default=None, help="Configuration directory (agents/, commands/, skills/)")
@click.option("--agent", "-a", default=None, help="Agent for top-level turns")
@click.option("--model", "-m", default=None, help="Model client as module:attr")
@click.option("--strict/--no-strict", default=None, help="Fail on the first invalid definition")
@click.option("--cwd", default=None, help="Working directory for tools")
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging")
@click.option("--rich/--no-rich", default=None, help="Rich approval prompts (default: auto)")
@click.pass_context
def cli(
    ctx: click.Context,
    config_dir: str | None,
    agent: str | None,
    model: str | None,
    strict: bool | None,
    cwd: str | None,
    verbose: bool,
    rich: bool | None,
) -> None:
    """Conductor -- agent orchestration runtime.

    \b
    Usage:
      conductor validate
      conductor agents
      conductor run git-quick HEAD~1 --model mypkg.models:client
      conductor chat "Summarize the open todos"
      conductor audit verify ~/.conductor/audit/audit-1234.jsonl
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    obj = ctx.ensure_object(dict)
    obj.update(
        config_dir=config_dir,
        agent=agent,
        model=model,
        strict=strict,
        cwd=cwd,
        rich=rich if rich is not None else sys.stderr.isatty(),
    )


@cli.command()
@click.pass_context
def validate(ctx: click.Context) -> None:
    """Load every definition and report problems (exit 2 if any)."""
    with _exit_on_error():
        runtime = _runtime(ctx, with_model=False)
        registry = runtime.registry
        click.echo(
            f"{len(registry.agents)} agents, {len(registry.skills)} skills, "
            f"{len(registry.commands)} commands"
        )
        if runtime.warnings:
            raise SystemExit(EXIT_CONFIG_ERROR)


@cli.command()
@click.pass_context
def agents(ctx: click.Context) -> None:
    """List agents."""
    with _exit_on_error():
        print_agents(_runtime(ctx, with_model=False).registry)


@cli.command()
@click.pass_context
def skills(ctx: click.Context) -> None:
    """List skills."""
    with _exit_on_error():
        print_skills(_runtime(ctx, with_model=False).registry)


@cli.command()
@click.pass_context
def commands(ctx: click.Context) -> None:
    """List commands."""
    with _exit_on_error():
        print_commands(_runtime(ctx, with_model=False).registry)


@cli.command()
@click.argument("command")
@click.argument("args", nargs=-1)
@click.pass_context
def render(ctx: click.Context, command: str, args: tuple[str, ...]) -> None:
    """Print a command's template with ARGS substituted."""
    with _exit_on_error():
        definition = _runtime(ctx, with_model=False).registry.get_command(command)
        click.echo(definition.render(" ".join(args)))


@cli.command()
@click.argument("command")
@click.argument("args", nargs=-1)
@click.pass_context
def run(ctx: click.Context, command: str, args: tuple[str, ...]) -> None:
    """Run COMMAND with ARGS."""
    with _exit_on_error():
        runtime = _runtime(ctx, with_model=True)
        try:
            result = asyncio.run(runtime.run_command(command, " ".join(args)))
        finally:
            runtime.close()
        print_result(result)
        if isinstance(result, SubtaskResult):
            result.raise_for_error()


@cli.command()
@click.argument("prompt", nargs=-1, required=True)
@click.pass_context
def chat(ctx: click.Context, prompt: tuple[str, ...]) -> None:
    """Send one PROMPT to the selected agent."""
    with _exit_on_error():
        runtime = _runtime(ctx, with_model=True)
        try:
            session = runtime.new_session(ctx.obj.get("agent"))
            result = asyncio.run(runtime.chat(session, " ".join(prompt)))
        finally:
            runtime.close()
        print_result(result)


def _register_subcommands() -> None:
    from conductor.cli.commands import audit_cmd

    cli.add_command(audit_cmd, "audit")


_register_subcommands()


def main() -> None:
    """Entry point for the ``conductor`` console script."""
    cli(obj={})


if __name__ == "__main__":
    main()
