"""Audit trail for tool invocations."""

from conductor.audit.logger import AuditEntry, AuditLog, AuditOutcome, verify_chain

__all__ = ["AuditEntry", "AuditLog", "AuditOutcome", "verify_chain"]
