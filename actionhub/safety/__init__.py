"""
Safety & Governance Module

Secret redaction and audit logging.
"""

from actionhub.safety.audit import (
    AuditLogWriter,
    AuditStorage,
    InMemoryAuditStorage,
    RedisAuditStorage,
    build_action_log,
)
from actionhub.safety.redaction import MASK, SENSITIVE_HEADERS, redact_headers

__all__ = [
    # Audit
    "AuditLogWriter",
    "AuditStorage",
    "InMemoryAuditStorage",
    "MASK",
    "RedisAuditStorage",
    # Redaction
    "SENSITIVE_HEADERS",
    "build_action_log",
    "redact_headers",
]
