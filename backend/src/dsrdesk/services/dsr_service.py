"""DSR service: public intake and admin handling of Data Subject Requests."""
import math
from typing import Any, Optional
from uuid import UUID

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dsrdesk.config import settings
from dsrdesk.integrations.notification_service import (
    NotificationService,
    dsr_confirmation_email,
    dsr_notification_email,
)
from dsrdesk.models.audit_log import AuditAction, ResourceType
from dsrdesk.models.base import as_naive_utc, utcnow
from dsrdesk.models.company import Company
from dsrdesk.models.dsr_request import DSRRequest, DSRStatus, RequestType
from dsrdesk.schemas.audit_log import AuditLogContext, AuditMetadata
from dsrdesk.schemas.dsr import DSR, DSRCreate, DSRList, DSRListQuery, DSRUpdate, Pagination
from dsrdesk.security.pii import DSRFields, PIICodec, email_search_hash
from dsrdesk.services.audit_service import AuditService
from dsrdesk.services.company_service import CompanyService

logger = structlog.get_logger(__name__)

SORT_COLUMNS = {
    "created_at": DSRRequest.created_at,
    "updated_at": DSRRequest.updated_at,
    "status": DSRRequest.status,
}


def _jsonable(value: Any) -> Any:
    if hasattr(value, "value"):
        return value.value
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


class DSRService:
    """Service layer for DSR operations."""

    def __init__(
        self,
        db: AsyncSession,
        codec: PIICodec,
        notifier: Optional[NotificationService] = None,
    ):
        """
        Initialize DSR service.

        Args:
            db: Database session
            codec: Encrypts and decrypts requester fields
            notifier: Email sender; no email is sent without one
        """
        self.db = db
        self.codec = codec
        self.notifier = notifier
        self.audit = AuditService(db)
        self.companies = CompanyService(db)

    async def create_dsr(
        self,
        dsr_data: DSRCreate,
        audit_context: Optional[AuditLogContext] = None,
    ) -> DSRRequest:
        """
        Store a public DSR submission.

        Requester fields are encrypted before they reach the database. No
        email is sent here; call ``notify_submission`` once the row is
        committed.

        Args:
            dsr_data: Submitted form
            audit_context: Network context of the submitter

        Returns:
            Created DSR row (fields still encrypted)

        Raises:
            ValueError: If no company has the given form identifier
        """
        company = await self.companies.get_company_by_identifier(dsr_data.company_identifier)
        if not company:
            raise ValueError("Company not found")

        requester_email = dsr_data.requester_email
        request_type = dsr_data.request_type.value
        encrypted = self.codec.encrypt_dsr_fields(
            DSRFields(
                requester_email=requester_email,
                requester_name=dsr_data.requester_name,
                request_type=request_type,
                details=dsr_data.details,
            )
        )

        dsr = DSRRequest(
            company_id=company.id,
            status=DSRStatus.NEW,
            internal_notes=[],
            **encrypted.as_columns(),
        )
        self.db.add(dsr)
        await self.db.flush()
        await self.db.refresh(dsr)

        context = (audit_context or AuditLogContext()).model_copy(
            update={
                "company_id": company.id,
                "user_email": requester_email,
                "user_name": dsr_data.requester_name,
            }
        )
        await self.audit.create_audit_log(
            AuditAction.DSR_CREATE,
            ResourceType.DSR_REQUEST,
            dsr.id,
            metadata=AuditMetadata(
                request_type=request_type,
                company_name=company.name,
                description=f"New DSR request created by {dsr_data.requester_name} ({request_type})",
            ),
            context=context,
        )

        logger.info("dsr_created", dsr_id=str(dsr.id), company_id=str(company.id), request_type=request_type)

        return dsr

    async def notify_submission(self, dsr: DSRRequest, dsr_data: DSRCreate) -> None:
        """
        Email the company admin and the requester about a stored DSR.

        Email failures are logged and never raised.
        """
        if self.notifier is None:
            return

        company = await self.db.get(Company, dsr.company_id)
        if company is None:
            logger.warning("dsr_notification_company_missing", dsr_id=str(dsr.id))
            return

        request_type = dsr_data.request_type.value
        subject, body = dsr_notification_email(
            requester_name=dsr_data.requester_name,
            requester_email=dsr_data.requester_email,
            request_type=request_type,
            details=dsr_data.details,
            company_name=company.name,
            dashboard_url=f"{settings.app_url}/dashboard",
        )
        result = await self.notifier.send_email(company.admin_email, subject, body)
        if not result.get("success"):
            logger.warning("dsr_admin_notification_failed", company_id=str(company.id), error=result.get("error"))

        subject, body = dsr_confirmation_email(
            requester_name=dsr_data.requester_name,
            request_type=request_type,
            company_name=company.name,
        )
        result = await self.notifier.send_email(dsr_data.requester_email, subject, body)
        if not result.get("success"):
            logger.warning("dsr_requester_confirmation_failed", company_id=str(company.id), error=result.get("error"))

    def to_schema(self, dsr: DSRRequest) -> DSR:
        """
        Decrypt a stored DSR for display.

        A request type that does not decrypt to a known value is shown as
        OTHER.
        """
        fields = self.codec.decrypt_dsr_fields(dsr)
        try:
            request_type = RequestType(fields.request_type)
        except ValueError:
            logger.warning("dsr_request_type_invalid", dsr_id=str(dsr.id))
            request_type = RequestType.OTHER

        return DSR(
            id=dsr.id,
            company_id=dsr.company_id,
            requester_email=fields.requester_email,
            requester_name=fields.requester_name,
            request_type=request_type,
            details=fields.details,
            status=dsr.status,
            internal_notes=dsr.internal_notes or [],
            acknowledged_at=dsr.acknowledged_at,
            completed_at=dsr.completed_at,
            created_at=dsr.created_at,
            updated_at=dsr.updated_at,
        )

    async def get_dsr(self, dsr_id: UUID, company_id: UUID) -> DSRRequest | None:
        """Get a DSR only if it belongs to the company."""
        result = await self.db.execute(
            select(DSRRequest).where(DSRRequest.id == dsr_id, DSRRequest.company_id == company_id)
        )
        return result.scalar_one_or_none()

    async def view_dsr(
        self,
        dsr_id: UUID,
        company_id: UUID,
        audit_context: Optional[AuditLogContext] = None,
    ) -> DSR | None:
        """Decrypted DSR for an admin; each view is recorded as DSR_VIEW."""
        dsr = await self.get_dsr(dsr_id, company_id)
        if dsr is None:
            return None

        await self.audit.create_audit_log(
            AuditAction.DSR_VIEW,
            ResourceType.DSR_REQUEST,
            dsr.id,
            metadata=AuditMetadata(dsr_status=dsr.status.value, description="DSR request viewed"),
            context=(audit_context or AuditLogContext()).model_copy(update={"company_id": company_id}),
        )
        return self.to_schema(dsr)

    async def list_dsrs(self, company_id: UUID, query: Optional[DSRListQuery] = None) -> DSRList:
        """
        List a company's DSRs.

        Email search compares the hash of the lowercased address, so it is
        exact-match only.

        Args:
            company_id: Owning company
            query: Filter, sort and page options

        Returns:
            Decrypted DSRs with pagination metadata
        """
        query = query or DSRListQuery()

        conditions = [DSRRequest.company_id == company_id]
        if query.status:
            conditions.append(DSRRequest.status == query.status)
        if query.email:
            conditions.append(DSRRequest.requester_email_hash == email_search_hash(query.email))

        sort_column = SORT_COLUMNS[query.sort_by]
        direction = sort_column.asc() if query.sort_order == "asc" else sort_column.desc()

        result = await self.db.execute(
            select(DSRRequest)
            .where(*conditions)
            .order_by(direction, DSRRequest.id)
            .offset((query.page - 1) * query.limit)
            .limit(query.limit)
        )
        rows = result.scalars().all()

        total = await self.db.scalar(select(func.count()).select_from(DSRRequest).where(*conditions)) or 0

        return DSRList(
            dsr_requests=[self.to_schema(dsr) for dsr in rows],
            pagination=Pagination(
                page=query.page,
                limit=query.limit,
                total=total,
                total_pages=math.ceil(total / query.limit),
            ),
        )

    async def update_dsr(
        self,
        dsr_id: UUID,
        company_id: UUID,
        update_data: DSRUpdate,
        audit_context: Optional[AuditLogContext] = None,
    ) -> DSR:
        """
        Update status and processing timestamps.

        A status change is audited as DSR_STATUS_CHANGE, anything else as
        DSR_UPDATE. Only fields whose value actually changed are listed in
        ``changes`` and ``old_values``.

        Raises:
            ValueError: If the DSR does not exist for this company
        """
        dsr = await self.get_dsr(dsr_id, company_id)
        if not dsr:
            raise ValueError("DSR not found")

        update_dict = update_data.model_dump(exclude_unset=True, exclude_none=True)
        for field in ("acknowledged_at", "completed_at"):
            if field in update_dict:
                update_dict[field] = as_naive_utc(update_dict[field])

        old_values = {field: getattr(dsr, field) for field in update_dict}
        changes = [field for field, value in update_dict.items() if old_values[field] != value]
        old_status = dsr.status

        for field, value in update_dict.items():
            setattr(dsr, field, value)

        await self.db.flush()
        await self.db.refresh(dsr)

        status_changed = "status" in changes
        if status_changed:
            action = AuditAction.DSR_STATUS_CHANGE
            description = f"DSR status changed from {old_status.value} to {dsr.status.value}"
        else:
            action = AuditAction.DSR_UPDATE
            description = "DSR request updated"

        await self.audit.create_audit_log(
            action,
            ResourceType.DSR_REQUEST,
            dsr.id,
            metadata=AuditMetadata(
                description=description,
                changes=changes,
                old_values={field: _jsonable(old_values[field]) for field in changes},
                new_values={field: _jsonable(value) for field, value in update_dict.items()},
                dsr_status=dsr.status.value,
                completed_at=dsr.completed_at,
            ),
            context=(audit_context or AuditLogContext()).model_copy(update={"company_id": company_id}),
        )

        logger.info("dsr_updated", dsr_id=str(dsr.id), changes=changes)
        return self.to_schema(dsr)

    async def add_note(
        self,
        dsr_id: UUID,
        company_id: UUID,
        note: str,
        admin_user_id: str,
        audit_context: Optional[AuditLogContext] = None,
    ) -> DSR:
        """
        Append an internal note.

        Raises:
            ValueError: If the DSR does not exist for this company
        """
        dsr = await self.get_dsr(dsr_id, company_id)
        if not dsr:
            raise ValueError("DSR not found")

        # assign a new list so the JSON column is flagged dirty
        dsr.internal_notes = [
            *(dsr.internal_notes or []),
            {"note": note, "admin_user_id": admin_user_id, "timestamp": utcnow().isoformat()},
        ]
        await self.db.flush()
        await self.db.refresh(dsr)

        await self.audit.create_audit_log(
            AuditAction.DSR_NOTE_ADD,
            ResourceType.DSR_REQUEST,
            dsr.id,
            metadata=AuditMetadata(
                description="Internal note added",
                dsr_status=dsr.status.value,
                extra={"note_count": len(dsr.internal_notes)},
            ),
            context=(audit_context or AuditLogContext()).model_copy(update={"company_id": company_id}),
        )
        return self.to_schema(dsr)
