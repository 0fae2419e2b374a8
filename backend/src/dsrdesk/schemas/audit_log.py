"""Pydantic schemas for audit log entries, filters and context."""
from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from dsrdesk.models.audit_log import AuditAction, ResourceType, Severity
from dsrdesk.schemas.session import AuthSession


class AuditMetadata(BaseModel):
    """
    Metadata stored with an audit entry.

    Well-known keys are typed fields; anything else goes into ``extra``. In
    storage the two are flattened into one JSON object, with typed fields
    taking precedence over colliding ``extra`` keys.
    """

    description: str | None = None
    severity: Severity | None = None
    old_values: dict[str, Any] | None = None
    new_values: dict[str, Any] | None = None
    changes: list[str] | None = None
    dsr_status: str | None = None
    request_type: str | None = None
    role: str | None = None
    company_name: str | None = None
    completed_at: datetime | None = None
    success: bool | None = None
    error: str | None = None
    extra: dict[str, Any] = Field(default_factory=dict)

    def to_document(self) -> dict[str, Any]:
        """Flatten into the JSON object persisted on the entry."""
        document = dict(self.extra)
        document.update(self.model_dump(mode="json", exclude_none=True, exclude={"extra"}))
        return document

    @classmethod
    def from_document(cls, document: dict[str, Any] | None) -> "AuditMetadata":
        """Split a stored JSON object back into typed fields and extras."""
        document = dict(document or {})
        known = {name: document.pop(name) for name in list(document) if name in cls.model_fields and name != "extra"}
        return cls(**known, extra=document)


class AuditLogContext(BaseModel):
    """Who performed an action and from where."""

    user_id: str | None = None
    user_email: str | None = None
    user_name: str | None = None
    company_id: UUID | str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    session: AuthSession | None = None


class CreateAuditLogParams(BaseModel):
    """Arguments for one audit write, as passed to audited_operation."""

    action: AuditAction
    resource_type: ResourceType
    resource_id: str
    metadata: AuditMetadata = Field(default_factory=AuditMetadata)
    context: AuditLogContext | None = None

    @field_validator("resource_id", mode="before")
    @classmethod
    def stringify_resource_id(cls, v: Any) -> Any:
        return str(v) if isinstance(v, UUID) else v


class AuditLogFilter(BaseModel):
    """Query options for reading the audit trail."""

    company_id: UUID | None = None
    user_id: str | None = None
    resource_type: ResourceType | None = None
    resource_id: str | None = None
    action: AuditAction | None = None
    start_date: datetime | None = Field(default=None, description="Inclusive lower bound on timestamp")
    end_date: datetime | None = Field(default=None, description="Inclusive upper bound on timestamp")
    limit: int | None = Field(default=None, ge=1, description="Maximum entries to return")
    skip: int = Field(default=0, ge=0, description="Entries to skip")
    sort_by: Literal["timestamp", "action", "resource_type"] = "timestamp"
    sort_order: Literal["asc", "desc"] = "desc"

    @field_validator("resource_id", mode="before")
    @classmethod
    def stringify_resource_id(cls, v: Any) -> Any:
        return str(v) if isinstance(v, UUID) else v

    @model_validator(mode="after")
    def check_date_range(self) -> "AuditLogFilter":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class AuditLog(BaseModel):
    """Schema for returning audit log data."""

    id: UUID
    action: AuditAction
    resource_type: ResourceType
    resource_id: str
    user_id: str | None
    user_email: str | None
    user_name: str | None
    company_id: UUID | None
    metadata: dict[str, Any] = Field(validation_alias="audit_metadata")
    ip_address: str | None
    user_agent: str | None
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class AuditLogPage(BaseModel):
    """Schema for a filtered page of audit log entries."""

    logs: list[AuditLog]
    total: int
    has_more: bool
