"""Export audit logs in JSON/CSV format for security review."""

from __future__ import annotations

import csv
import io
import json
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from conductor.audit.logger import AuditEntry

_FIELDS = [
    "entry_id", "timestamp", "session_id", "agent", "tool",
    "resource", "decision", "rule", "outcome", "asked", "detail",
]


def export_entries(entries: Iterable[AuditEntry], *, fmt: str = "json") -> str:
    """Format in-memory audit entries."""
    return _format([e.to_dict() for e in entries], fmt)


def export_audit_file(log_path: Path, *, fmt: str = "json") -> str:
    """Format the records of a JSONL audit file. Missing file -> empty output."""
    if not log_path.exists():
        return "[]" if fmt == "json" else ""
    return _format(_read_jsonl(log_path), fmt)


def export_audit_dir(audit_dir: Path, *, fmt: str = "json") -> str:
    """Format every ``audit-*.jsonl`` file in a directory, oldest name first."""
    if not audit_dir.exists():
        return "[]" if fmt == "json" else ""
    records: list[dict[str, Any]] = []
    for path in sorted(audit_dir.glob("audit-*.jsonl")):
        records.extend(_read_jsonl(path))
    return _format(records, fmt)


def _format(records: list[dict[str, Any]], fmt: str) -> str:
    if fmt == "csv":
        return _to_csv(records)
    if fmt != "json":
        raise ValueError(f"Unsupported export format: {fmt!r} (expected json or csv)")
    return json.dumps(records, indent=2)


def _read_jsonl(path: Path) -> list[dict[str, Any]]:
    records = []
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                records.append(json.loads(line))
    return records


def _to_csv(records: list[dict[str, Any]]) -> str:
    if not records:
        return ""
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=_FIELDS, extrasaction="ignore")
    writer.writeheader()
    for record in records:
        writer.writerow(record)
    return output.getvalue()
