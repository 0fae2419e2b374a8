"""DSR request model with encrypted requester fields."""
import enum

from sqlalchemy import JSON, Column, DateTime, Enum as SQLEnum, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from dsrdesk.models.base import Base


class RequestType(str, enum.Enum):
    """What the data subject is asking for."""

    ACCESS = "ACCESS"
    DELETE = "DELETE"
    CORRECT = "CORRECT"
    OTHER = "OTHER"


class DSRStatus(str, enum.Enum):
    """Processing state of a DSR."""

    NEW = "NEW"
    PENDING_VERIFICATION = "PENDING_VERIFICATION"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class DSRRequest(Base):
    """
    Data Subject Request.

    requester_email, requester_name, request_type and details hold
    ciphertext. requester_email_hash is the SHA-256 of the lowercased email
    and is the only column used to search by requester.
    """

    __tablename__ = "dsr_requests"
    __table_args__ = (
        Index("ix_dsr_requests_company_status", "company_id", "status"),
    )

    company_id = Column(Uuid(as_uuid=True), ForeignKey("companies.id"), nullable=False, index=True)
    requester_email = Column(Text, nullable=False)
    requester_email_hash = Column(String(64), nullable=False, index=True)
    requester_name = Column(Text, nullable=False)
    request_type = Column(Text, nullable=False)
    details = Column(Text, nullable=True)
    status = Column(SQLEnum(DSRStatus, native_enum=False, length=32), nullable=False, default=DSRStatus.NEW)
    internal_notes = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=list)
    acknowledged_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    company = relationship("Company", back_populates="dsr_requests")

    def __repr__(self) -> str:
        """String representation."""
        return f"<DSRRequest(id={self.id}, company_id={self.company_id}, status={self.status.value})>"
