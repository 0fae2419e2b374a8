"""Pydantic schemas for API request/response validation."""

from dsrdesk.schemas.audit_log import (
    AuditLog,
    AuditLogContext,
    AuditLogFilter,
    AuditLogPage,
    AuditMetadata,
    CreateAuditLogParams,
)
from dsrdesk.schemas.company import (
    Company,
    CompanyCreate,
    CompanyDashboardInfo,
    CompanyPublicInfo,
)
from dsrdesk.schemas.dsr import (
    DSR,
    DSRCreate,
    DSRList,
    DSRListQuery,
    DSRSubmitted,
    DSRUpdate,
    InternalNote,
    InternalNoteCreate,
    Pagination,
)
from dsrdesk.schemas.session import AuthSession, SessionInfo, SessionUser

__all__ = [
    # Audit log schemas
    "AuditLog",
    "AuditLogContext",
    "AuditLogFilter",
    "AuditLogPage",
    "AuditMetadata",
    "CreateAuditLogParams",
    # Company schemas
    "Company",
    "CompanyCreate",
    "CompanyDashboardInfo",
    "CompanyPublicInfo",
    # DSR schemas
    "DSR",
    "DSRCreate",
    "DSRList",
    "DSRListQuery",
    "DSRSubmitted",
    "DSRUpdate",
    "InternalNote",
    "InternalNoteCreate",
    "Pagination",
    # Session schemas
    "AuthSession",
    "SessionInfo",
    "SessionUser",
]
