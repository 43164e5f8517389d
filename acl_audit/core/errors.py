"""Base exception classes for acl-audit"""

from typing import Any, Dict, List, Optional


class AuditError(Exception):
    """Base exception for all acl-audit errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(AuditError):
    """Raised when required configuration is missing or invalid"""

    def __init__(self, message: str, fields: Optional[List[str]] = None):
        self.fields = fields or []
        super().__init__(message, {"fields": self.fields})


class AuthenticationError(AuditError):
    """Raised when the hosting service rejects our credentials"""

    def __init__(self, message: str = "Authentication failed", status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message, {"status_code": status_code})


class ServiceError(AuditError):
    """Raised when an external service call fails"""

    def __init__(self, service: str, reason: str, status_code: Optional[int] = None):
        self.service = service
        self.reason = reason
        self.status_code = status_code
        super().__init__(
            f"Service '{service}' failed: {reason}",
            {
                "service": service,
                "reason": reason,
                "status_code": status_code,
            },
        )


class ReportError(AuditError):
    """Raised when a report cannot be written"""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(
            f"Could not write report '{path}': {reason}",
            {"path": path, "reason": reason},
        )
