"""DSR API endpoints: public submission and admin handling."""
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from dsrdesk.api.deps import get_current_session, get_db, get_notification_service, get_pii_codec
from dsrdesk.config import settings
from dsrdesk.integrations.notification_service import NotificationService
from dsrdesk.models.company import Company
from dsrdesk.models.dsr_request import DSRStatus
from dsrdesk.schemas.dsr import DSR, DSRCreate, DSRList, DSRListQuery, DSRSubmitted, DSRUpdate, InternalNoteCreate
from dsrdesk.schemas.session import AuthSession
from dsrdesk.security.pii import PIICodec
from dsrdesk.services.company_service import CompanyService
from dsrdesk.services.dsr_service import DSRService
from dsrdesk.utils.audit import extract_audit_context

router = APIRouter(prefix="/dsr", tags=["DSR"])


async def _admin_company(db: AsyncSession, session: AuthSession) -> Company:
    company = await CompanyService(db).get_company_by_admin(session.user.id)
    if not company:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No company found for this user")
    return company


@router.post("", response_model=DSRSubmitted, status_code=status.HTTP_201_CREATED)
async def submit_dsr(
    dsr_data: DSRCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    codec: PIICodec = Depends(get_pii_codec),
    notifier: NotificationService = Depends(get_notification_service),
) -> DSRSubmitted:
    """
    Submit a Data Subject Request from the public form. No authentication.

    - **company_identifier**: Public form identifier of the company
    - **requester_email**: Email of the data subject
    - **requester_name**: Name of the data subject
    - **request_type**: ACCESS, DELETE, CORRECT or OTHER
    - **details**: Optional free text

    The admin and the requester are emailed only after the DSR is committed.
    """
    service = DSRService(db, codec, notifier)

    try:
        dsr = await service.create_dsr(dsr_data, audit_context=extract_audit_context(request))
        await db.commit()
    except ValueError as e:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e

    await service.notify_submission(dsr, dsr_data)
    return DSRSubmitted(dsr_id=dsr.id)


@router.get("", response_model=DSRList)
async def list_dsrs(
    page: int = Query(default=1, ge=1, description="Page number (1-indexed)"),
    limit: int = Query(default=settings.dsr_default_page_size, ge=1, le=100, description="Items per page (max 100)"),
    status_filter: DSRStatus | None = Query(default=None, alias="status", description="Filter by status"),
    email: str | None = Query(default=None, description="Exact requester email (case-insensitive)"),
    sort_by: Literal["created_at", "updated_at", "status"] = Query(default="created_at"),
    sort_order: Literal["asc", "desc"] = Query(default="desc"),
    db: AsyncSession = Depends(get_db),
    codec: PIICodec = Depends(get_pii_codec),
    session: AuthSession = Depends(get_current_session),
) -> DSRList:
    """
    List DSRs of the signed-in admin's company, decrypted.

    Searching by **email** matches the stored email hash; partial matches
    are not supported.
    """
    company = await _admin_company(db, session)
    query = DSRListQuery(
        page=page,
        limit=limit,
        status=status_filter,
        email=email,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return await DSRService(db, codec).list_dsrs(company.id, query)


@router.get("/{dsr_id}", response_model=DSR)
async def get_dsr(
    dsr_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    codec: PIICodec = Depends(get_pii_codec),
    session: AuthSession = Depends(get_current_session),
) -> DSR:
    """Get one DSR, decrypted. Every view is recorded in the audit trail."""
    company = await _admin_company(db, session)
    dsr = await DSRService(db, codec).view_dsr(
        dsr_id, company.id, audit_context=extract_audit_context(request, session)
    )
    if not dsr:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"DSR {dsr_id} not found")

    await db.commit()
    return dsr


@router.put("/{dsr_id}", response_model=DSR)
async def update_dsr(
    dsr_id: UUID,
    update_data: DSRUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    codec: PIICodec = Depends(get_pii_codec),
    session: AuthSession = Depends(get_current_session),
) -> DSR:
    """
    Update a DSR.

    - **status**: New processing status
    - **acknowledged_at**: When the request was acknowledged
    - **completed_at**: When the request was completed
    """
    company = await _admin_company(db, session)

    try:
        dsr = await DSRService(db, codec).update_dsr(
            dsr_id, company.id, update_data, audit_context=extract_audit_context(request, session)
        )
        await db.commit()
        return dsr
    except ValueError as e:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@router.post("/{dsr_id}/notes", response_model=DSR, status_code=status.HTTP_201_CREATED)
async def add_note(
    dsr_id: UUID,
    note_data: InternalNoteCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    codec: PIICodec = Depends(get_pii_codec),
    session: AuthSession = Depends(get_current_session),
) -> DSR:
    """Append an internal note visible only to company admins."""
    company = await _admin_company(db, session)

    try:
        dsr = await DSRService(db, codec).add_note(
            dsr_id,
            company.id,
            note_data.note,
            admin_user_id=session.user.id,
            audit_context=extract_audit_context(request, session),
        )
        await db.commit()
        return dsr
    except ValueError as e:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
