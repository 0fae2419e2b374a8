"""Pydantic schemas for companies."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class CompanyCreate(BaseModel):
    """Schema for creating the signed-in admin's company."""

    name: str = Field(..., min_length=1, max_length=255, description="Company name shown on the public form")
    admin_email: EmailStr = Field(..., description="Where new DSR notifications are sent")


class Company(BaseModel):
    """Schema for returning company data."""

    id: UUID
    name: str
    admin_user_id: str
    admin_email: str
    dsr_form_identifier: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CompanyPublicInfo(BaseModel):
    """What the public DSR form may see."""

    name: str
    identifier: str


class CompanyDashboardInfo(BaseModel):
    """Company summary for the admin dashboard."""

    id: UUID
    name: str
    dsr_form_identifier: str
    admin_email: str
