"""Application services"""
from .audit_service import AuditService, AuditSummary
from .base import ServiceBase

__all__ = ['AuditService', 'AuditSummary', 'ServiceBase']
