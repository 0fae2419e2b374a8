"""Audit log API endpoints (read-only)."""
from datetime import datetime
from typing import Literal
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from dsrdesk.api.deps import get_current_session, get_db
from dsrdesk.config import settings
from dsrdesk.models.audit_log import AuditAction, ResourceType
from dsrdesk.schemas.audit_log import AuditLogFilter, AuditLogPage
from dsrdesk.schemas.session import AuthSession
from dsrdesk.services.audit_service import AuditService
from dsrdesk.services.company_service import CompanyService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/audit-logs", tags=["Audit Logs"])


@router.get("", response_model=AuditLogPage)
async def list_audit_logs(
    company_id: UUID | None = Query(default=None, description="Company to read; defaults to the admin's company"),
    user_id: str | None = Query(default=None, description="Filter by acting user"),
    resource_type: ResourceType | None = Query(default=None, description="Filter by resource type"),
    resource_id: str | None = Query(default=None, description="Filter by resource id"),
    action: AuditAction | None = Query(default=None, description="Filter by action"),
    start_date: datetime | None = Query(default=None, description="Inclusive lower bound on timestamp"),
    end_date: datetime | None = Query(default=None, description="Inclusive upper bound on timestamp"),
    limit: int = Query(default=settings.audit_log_default_page_size, ge=1, description="Page size (capped at 100)"),
    skip: int = Query(default=0, ge=0, description="Entries to skip"),
    sort_by: Literal["timestamp", "action", "resource_type"] = Query(default="timestamp"),
    sort_order: Literal["asc", "desc"] = Query(default="desc"),
    db: AsyncSession = Depends(get_db),
    session: AuthSession = Depends(get_current_session),
) -> AuditLogPage:
    """
    Read the audit trail of a company the signed-in user administers.

    Without **company_id** the admin's only company is used. An admin with
    no company gets an empty page.
    """
    companies = await CompanyService(db).list_companies_for_admin(session.user.id)
    owned = {company.id for company in companies}

    if company_id is not None:
        if company_id not in owned:
            logger.warning("audit_log_access_denied", user_id=session.user.id, company_id=str(company_id))
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have access to this company's audit logs",
            )
    elif not companies:
        return AuditLogPage(logs=[], total=0, has_more=False)
    elif len(companies) > 1:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="company_id is required when you administer more than one company",
        )
    else:
        company_id = companies[0].id

    try:
        filters = AuditLogFilter(
            company_id=company_id,
            user_id=user_id,
            resource_type=resource_type,
            resource_id=resource_id,
            action=action,
            start_date=start_date,
            end_date=end_date,
            limit=min(limit, settings.audit_log_max_page_size),
            skip=skip,
            sort_by=sort_by,
            sort_order=sort_order,
        )
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.errors()[0]["msg"]) from e

    return await AuditService(db).get_audit_logs(filters)


@router.get("/resources/{resource_type}/{resource_id}", response_model=AuditLogPage)
async def get_resource_history(
    resource_type: ResourceType,
    resource_id: str,
    limit: int = Query(default=settings.audit_log_default_page_size, ge=1, description="Page size (capped at 100)"),
    skip: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    session: AuthSession = Depends(get_current_session),
) -> AuditLogPage:
    """History of one resource within the admin's company, newest first."""
    company = await CompanyService(db).get_company_by_admin(session.user.id)
    if not company:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No company found for this user")

    return await AuditService(db).get_resource_audit_logs(
        resource_type,
        resource_id,
        limit=min(limit, settings.audit_log_max_page_size),
        skip=skip,
        company_id=company.id,
    )
