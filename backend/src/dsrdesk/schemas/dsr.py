"""Pydantic schemas for DSR submission, admin views and updates."""
from datetime import datetime
from typing import Annotated, Literal
from uuid import UUID

from email_validator import EmailNotValidError, validate_email
from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from dsrdesk.models.dsr_request import DSRStatus, RequestType


def _check_email(value: str) -> str:
    """Reject malformed addresses but keep the submitted text as is."""
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValueError(f"value is not a valid email address: {e}") from e
    return value


# Stored exactly as submitted; EmailStr would rewrite the domain
SubmittedEmail = Annotated[str, AfterValidator(_check_email)]


class DSRCreate(BaseModel):
    """Public form submission.

    Examples:
        ```json
        {
            "company_identifier": "5b0b7d56-6f55-4c1e-9d0a-1f1f3c8c2f11",
            "requester_email": "jane@example.com",
            "requester_name": "Jane Doe",
            "request_type": "ACCESS",
            "details": "Please send me a copy of my data"
        }
        ```
    """

    company_identifier: str = Field(..., min_length=1, description="Public DSR form identifier of the company")
    requester_email: SubmittedEmail = Field(..., description="Email of the data subject")
    requester_name: str = Field(..., min_length=1, max_length=255, description="Name of the data subject")
    request_type: RequestType = Field(..., description="ACCESS, DELETE, CORRECT or OTHER")
    details: str | None = Field(default=None, max_length=5000, description="Free-text details")


class DSRSubmitted(BaseModel):
    """Response to a public submission."""

    success: bool = True
    dsr_id: UUID


class InternalNote(BaseModel):
    """Admin-only note attached to a DSR."""

    note: str = Field(..., min_length=1)
    admin_user_id: str
    timestamp: datetime


class InternalNoteCreate(BaseModel):
    """Schema for adding an internal note."""

    note: str = Field(..., min_length=1, max_length=5000)


class DSRUpdate(BaseModel):
    """Admin update (all fields optional)."""

    status: DSRStatus | None = None
    acknowledged_at: datetime | None = None
    completed_at: datetime | None = None


class DSR(BaseModel):
    """Decrypted DSR as shown to a company admin."""

    id: UUID
    company_id: UUID
    requester_email: str
    requester_name: str
    request_type: RequestType
    details: str | None
    status: DSRStatus
    internal_notes: list[InternalNote]
    acknowledged_at: datetime | None
    completed_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DSRListQuery(BaseModel):
    """Admin list options."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    status: DSRStatus | None = None
    email: str | None = Field(default=None, description="Exact requester email, matched case-insensitively")
    sort_by: Literal["created_at", "updated_at", "status"] = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"


class Pagination(BaseModel):
    """Page metadata for DSR lists."""

    page: int
    limit: int
    total: int
    total_pages: int


class DSRList(BaseModel):
    """Schema for paginated DSR list."""

    dsr_requests: list[DSR]
    pagination: Pagination
