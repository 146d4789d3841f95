"""Audit logging for webhook decisions."""

from responder.audit.logger import AuditLogger, ChainValidationResult, validate_audit_chain

__all__ = ["AuditLogger", "ChainValidationResult", "validate_audit_chain"]
