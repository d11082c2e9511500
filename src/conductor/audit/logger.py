"""AuditLog: append-only record of tool invocation attempts.

Appends are serialized by a lock so parent and subtask sessions can write
concurrently. A child log forwards every entry to its parent. When a JSONL
path is configured, entries are also persisted with SHA-256 hash chaining.
"""

from __future__ import annotations

import hashlib
import json
import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import IO, Any

from conductor.types.permissions import PermissionDecision

GENESIS_HASH = "0" * 64


class AuditOutcome(Enum):
    """What happened to a tool invocation attempt."""

    SUCCESS = "success"
    ERROR = "error"
    DENIED = "denied"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class AuditEntry:
    """An immutable record of one tool invocation attempt."""

    tool: str
    resource: str
    decision: str
    rule: str
    outcome: AuditOutcome
    session_id: str
    agent: str
    timestamp: float = field(default_factory=time.time)
    entry_id: str = field(default_factory=lambda: uuid.uuid4().hex[:16])
    asked: bool = False
    detail: str = ""

    @classmethod
    def from_decision(
        cls,
        decision: PermissionDecision,
        outcome: AuditOutcome,
        *,
        session_id: str,
        agent: str,
        asked: bool = False,
        detail: str = "",
    ) -> AuditEntry:
        return cls(
            tool=decision.tool,
            resource=decision.resource,
            decision=decision.outcome.value,
            rule=str(decision.rule),
            outcome=outcome,
            session_id=session_id,
            agent=agent,
            asked=asked,
            detail=detail,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "entry_id": self.entry_id,
            "timestamp": self.timestamp,
            "session_id": self.session_id,
            "agent": self.agent,
            "tool": self.tool,
            "resource": self.resource,
            "decision": self.decision,
            "rule": self.rule,
            "outcome": self.outcome.value,
            "asked": self.asked,
            "detail": self.detail,
        }


class AuditLog:
    """Append-only, thread-safe audit log.

    Usage::

        log = AuditLog(session_id="abc", log_path=Path("audit.jsonl"))
        log.append(entry)
        child = log.child("def")  # forwards appends to ``log``
    """

    def __init__(
        self,
        session_id: str,
        *,
        parent: AuditLog | None = None,
        log_path: Path | None = None,
    ) -> None:
        self._session_id = session_id
        self._parent = parent
        self._entries: list[AuditEntry] = []
        self._lock = threading.Lock()
        self._log_path = log_path
        self._handle: IO[str] | None = None
        self._prev_hash = GENESIS_HASH

        if log_path is not None:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            if log_path.exists():
                self._prev_hash = _last_hash(log_path)
            self._handle = open(log_path, "a", encoding="utf-8")  # noqa: SIM115

    # -- Context manager support ------------------------------------------

    def __enter__(self) -> AuditLog:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        """Flush and close the JSONL handle, if any."""
        with self._lock:
            if self._handle is not None:
                self._handle.flush()
                self._handle.close()
                self._handle = None

    # -- Properties -------------------------------------------------------

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def log_path(self) -> Path | None:
        return self._log_path

    @property
    def entries(self) -> tuple[AuditEntry, ...]:
        with self._lock:
            return tuple(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # -- Core write -------------------------------------------------------

    def append(self, entry: AuditEntry) -> None:
        """Append one entry here and in every ancestor log."""
        with self._lock:
            self._entries.append(entry)
            if self._handle is not None:
                self._write_jsonl(self._handle, entry)
        if self._parent is not None:
            self._parent.append(entry)

    def child(self, session_id: str) -> AuditLog:
        """Create a log for a subtask session that forwards to this one."""
        return AuditLog(session_id, parent=self)

    def _write_jsonl(self, handle: IO[str], entry: AuditEntry) -> None:
        record = entry.to_dict()
        record["prev_hash"] = self._prev_hash
        record["hash"] = compute_hash(record)
        self._prev_hash = record["hash"]
        handle.write(json.dumps(record, separators=(",", ":")) + "\n")
        handle.flush()


# ---------------------------------------------------------------------------
# Hash chain helpers
# ---------------------------------------------------------------------------

def compute_hash(record: dict[str, Any]) -> str:
    """SHA-256 over the record *without* the ``hash`` key."""
    payload = {k: v for k, v in record.items() if k != "hash"}
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(encoded.encode()).hexdigest()


def _last_hash(path: Path) -> str:
    last = GENESIS_HASH
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                last = json.loads(line).get("hash", last)
            except json.JSONDecodeError:
                break
    return last


def verify_chain(log_path: Path) -> tuple[bool, list[str]]:
    """Verify the hash chain of a JSONL audit file.

    Returns ``(valid, errors)`` where *errors* lists human-readable problems.
    """
    errors: list[str] = []
    expected_prev = GENESIS_HASH

    with open(log_path, encoding="utf-8") as f:
        for lineno, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as e:
                errors.append(f"Line {lineno}: invalid JSON: {e}")
                break

            stored = record.get("hash", "")
            recomputed = compute_hash(record)
            if recomputed != stored:
                errors.append(
                    f"Line {lineno}: hash mismatch "
                    f"(stored={stored[:12]} recomputed={recomputed[:12]})"
                )
            if record.get("prev_hash") != expected_prev:
                errors.append(
                    f"Line {lineno}: prev_hash mismatch "
                    f"(expected={expected_prev[:12]} got={str(record.get('prev_hash', ''))[:12]})"
                )
            expected_prev = stored

    return (len(errors) == 0, errors)
