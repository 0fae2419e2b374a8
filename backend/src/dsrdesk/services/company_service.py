"""Company service for business logic."""
from typing import Optional
from uuid import UUID, uuid4

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dsrdesk.models.audit_log import AuditAction, ResourceType
from dsrdesk.models.company import Company
from dsrdesk.schemas.audit_log import AuditLogContext, AuditMetadata
from dsrdesk.schemas.company import CompanyCreate
from dsrdesk.services.audit_service import AuditService

logger = structlog.get_logger(__name__)


class CompanyService:
    """Service layer for company operations."""

    def __init__(self, db: AsyncSession):
        """Initialize company service with database session."""
        self.db = db
        self.audit = AuditService(db)

    async def create_company(
        self,
        company_data: CompanyCreate,
        admin_user_id: str,
        audit_context: Optional[AuditLogContext] = None,
    ) -> Company:
        """
        Create the company owned by an admin user.

        A fresh UUID becomes the public DSR form identifier.

        Args:
            company_data: Company creation data
            admin_user_id: Id of the admin who will own the company
            audit_context: Caller context; no audit entry is written without it

        Returns:
            Created company

        Raises:
            ValueError: If the admin already owns a company
        """
        existing = await self.get_company_by_admin(admin_user_id)
        if existing:
            raise ValueError("Company already exists for this user")

        company = Company(
            name=company_data.name,
            admin_user_id=admin_user_id,
            admin_email=company_data.admin_email,
            dsr_form_identifier=str(uuid4()),
        )

        self.db.add(company)
        await self.db.flush()
        await self.db.refresh(company)

        if audit_context:
            await self.audit.create_audit_log(
                AuditAction.COMPANY_CREATE,
                ResourceType.COMPANY,
                company.id,
                metadata=AuditMetadata(
                    company_name=company.name,
                    description=f'Company "{company.name}" created',
                    extra={"identifier": company.dsr_form_identifier},
                ),
                context=audit_context.model_copy(update={"company_id": company.id}),
            )

        logger.info("company_created", company_id=str(company.id))
        return company

    async def get_company(self, company_id: UUID) -> Company | None:
        """Get company by ID."""
        result = await self.db.execute(select(Company).where(Company.id == company_id))
        return result.scalar_one_or_none()

    async def get_company_by_identifier(self, identifier: str) -> Company | None:
        """Get company by its public DSR form identifier."""
        result = await self.db.execute(select(Company).where(Company.dsr_form_identifier == identifier))
        return result.scalar_one_or_none()

    async def get_company_by_admin(self, admin_user_id: str) -> Company | None:
        """Get the company administered by a user."""
        result = await self.db.execute(select(Company).where(Company.admin_user_id == admin_user_id))
        return result.scalars().first()

    async def list_companies_for_admin(self, admin_user_id: str) -> list[Company]:
        """All companies administered by a user."""
        result = await self.db.execute(select(Company).where(Company.admin_user_id == admin_user_id))
        return list(result.scalars().all())
