"""Audit log model for the append-only compliance trail."""
import enum
from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, Enum as SQLEnum, Index, String, Uuid
from sqlalchemy.dialects.postgresql import JSONB

from dsrdesk.database import Base
from dsrdesk.models.base import utcnow


class AuditAction(str, enum.Enum):
    """Every action the audit trail can record."""

    # User actions
    USER_LOGIN = "USER_LOGIN"
    USER_LOGOUT = "USER_LOGOUT"
    USER_REGISTER = "USER_REGISTER"
    USER_PASSWORD_CHANGE = "USER_PASSWORD_CHANGE"
    USER_EMAIL_VERIFY = "USER_EMAIL_VERIFY"
    # Company actions
    COMPANY_CREATE = "COMPANY_CREATE"
    COMPANY_UPDATE = "COMPANY_UPDATE"
    COMPANY_DELETE = "COMPANY_DELETE"
    # DSR actions
    DSR_CREATE = "DSR_CREATE"
    DSR_UPDATE = "DSR_UPDATE"
    DSR_STATUS_CHANGE = "DSR_STATUS_CHANGE"
    DSR_DELETE = "DSR_DELETE"
    DSR_NOTE_ADD = "DSR_NOTE_ADD"
    DSR_VIEW = "DSR_VIEW"
    # Admin actions
    ADMIN_LOGIN = "ADMIN_LOGIN"
    ADMIN_ACCESS_GRANTED = "ADMIN_ACCESS_GRANTED"
    ADMIN_ROLE_CHANGE = "ADMIN_ROLE_CHANGE"
    # System actions
    SYSTEM_BACKUP = "SYSTEM_BACKUP"
    SYSTEM_MAINTENANCE = "SYSTEM_MAINTENANCE"
    DATA_EXPORT = "DATA_EXPORT"
    DATA_IMPORT = "DATA_IMPORT"


class ResourceType(str, enum.Enum):
    """Kinds of entity an audit entry can point at."""

    USER = "USER"
    COMPANY = "COMPANY"
    DSR_REQUEST = "DSR_REQUEST"
    AUDIT_LOG = "AUDIT_LOG"
    SYSTEM = "SYSTEM"
    SESSION = "SESSION"


class Severity(str, enum.Enum):
    """Sensitivity of an audited action."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class AuditLog(Base):
    """
    Audit entry for compliance and security.

    Rows are written once and never updated or deleted. ``timestamp`` is the
    write time assigned by the store, not the time of the business event.
    """

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_company_timestamp", "company_id", "timestamp"),
        Index("ix_audit_logs_resource", "resource_type", "resource_id"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    action = Column(SQLEnum(AuditAction, native_enum=False, length=64), nullable=False, index=True)
    resource_type = Column(SQLEnum(ResourceType, native_enum=False, length=32), nullable=False, index=True)
    resource_id = Column(String(64), nullable=False)
    user_id = Column(String, nullable=True, index=True)  # None for public actions
    user_email = Column(String, nullable=True)
    user_name = Column(String, nullable=True)
    company_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    audit_metadata = Column("metadata", JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=dict)
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    timestamp = Column(DateTime, nullable=False, default=utcnow, index=True)

    def __repr__(self) -> str:
        """String representation."""
        return f"<AuditLog(action={self.action}, resource_type={self.resource_type}, resource_id={self.resource_id})>"
