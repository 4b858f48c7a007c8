"""Audit logging package."""

from thcontrol.audit.logger import AuditLogger

__all__ = ["AuditLogger"]
