"""CLI subcommands for audit logs (export, verify)."""

from __future__ import annotations

from pathlib import Path

import click


@click.group()
def audit_cmd() -> None:
    """Inspect tool-call audit logs."""


@audit_cmd.command("export")
@click.option("--dir", "audit_dir", type=click.Path(path_type=Path), default=None,
              help="Directory of audit-*.jsonl files (default: configured audit dir)")
@click.option("--file", "audit_file", type=click.Path(path_type=Path), default=None,
              help="A single JSONL audit file")
@click.option("--format", "fmt", type=click.Choice(["json", "csv"]), default="json",
              help="Output format")
@click.pass_context
def audit_export(
    ctx: click.Context, audit_dir: Path | None, audit_file: Path | None, fmt: str,
) -> None:
    """Export audit records as JSON or CSV."""
    from conductor.audit.export import export_audit_dir, export_audit_file

    if audit_file is not None and audit_dir is not None:
        raise click.UsageError("--dir and --file are mutually exclusive")

    if audit_file is not None:
        click.echo(export_audit_file(audit_file, fmt=fmt))
        return

    if audit_dir is None:
        from conductor.cli.main import _settings
        from conductor.core.config import DEFAULT_AUDIT_DIR

        audit_dir = _settings(ctx.find_root()).audit.audit_dir or DEFAULT_AUDIT_DIR
    click.echo(export_audit_dir(audit_dir.expanduser(), fmt=fmt))


@audit_cmd.command("verify")
@click.argument("log_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def audit_verify(log_file: Path) -> None:
    """Check the hash chain of a JSONL audit file (exit 1 if broken)."""
    from conductor.audit.logger import verify_chain

    valid, errors = verify_chain(log_file)
    if valid:
        click.echo(f"{log_file}: chain intact")
        return
    for error in errors:
        click.echo(error, err=True)
    click.echo(f"{log_file}: {len(errors)} problem(s)", err=True)
    raise SystemExit(1)
