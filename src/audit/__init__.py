"""
Quote Audit Trail Module

Append-only audit history for quotes: every material mutation is recorded
with its actor, a human-readable description and the changed slice of the
quote before and after.

Usage:
    from audit import QuoteAuditRecorder, InMemoryAuditStorage

    recorder = QuoteAuditRecorder(InMemoryAuditStorage())
    recorder.register(event_bus)
    history = recorder.get_audit_logs(quote_id)
"""

from .audit_models import QuoteAuditAction, QuoteAuditEntry, serialize_value
from .audit_storage import AuditStorageBackend, InMemoryAuditStorage
from .audit_recorder import QuoteAuditRecorder, truncate_notes, verify_status_chain

__all__ = [
    "QuoteAuditAction",
    "QuoteAuditEntry",
    "serialize_value",
    "AuditStorageBackend",
    "InMemoryAuditStorage",
    "QuoteAuditRecorder",
    "truncate_notes",
    "verify_status_chain",
]
