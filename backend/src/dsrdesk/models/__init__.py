"""SQLAlchemy ORM models for the DSR platform."""
# Import all models here to ensure they are registered with Alembic

from dsrdesk.models.base import Base
from dsrdesk.models.audit_log import AuditAction, AuditLog, ResourceType, Severity
from dsrdesk.models.company import Company
from dsrdesk.models.dsr_request import DSRRequest, DSRStatus, RequestType

__all__ = [
    "Base",
    "AuditAction",
    "AuditLog",
    "ResourceType",
    "Severity",
    "Company",
    "DSRRequest",
    "DSRStatus",
    "RequestType",
]
