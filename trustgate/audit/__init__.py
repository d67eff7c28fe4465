"""Audit logging system."""

from .audit import (
    AuditLog,
    AuditAction,
    AuditEntry,
    default_audit_path,
)

__all__ = [
    "AuditLog",
    "AuditAction",
    "AuditEntry",
    "default_audit_path",
]
