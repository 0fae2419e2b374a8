"""Company API endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from dsrdesk.api.deps import get_current_session, get_db
from dsrdesk.schemas.company import Company, CompanyCreate, CompanyDashboardInfo, CompanyPublicInfo
from dsrdesk.schemas.session import AuthSession
from dsrdesk.services.company_service import CompanyService
from dsrdesk.utils.audit import extract_audit_context

router = APIRouter(prefix="/companies", tags=["Companies"])


@router.post("", response_model=Company, status_code=status.HTTP_201_CREATED)
async def create_company(
    company_data: CompanyCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    session: AuthSession = Depends(get_current_session),
) -> Company:
    """
    Create the signed-in admin's company.

    - **name**: Company name shown on the public DSR form
    - **admin_email**: Address that receives new DSR notifications

    Each admin user may own one company.
    """
    service = CompanyService(db)

    try:
        company = await service.create_company(
            company_data,
            admin_user_id=session.user.id,
            audit_context=extract_audit_context(request, session),
        )
        await db.commit()
        return company
    except ValueError as e:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e


@router.get("/form-info/{identifier}", response_model=CompanyPublicInfo)
async def get_form_info(
    identifier: str,
    db: AsyncSession = Depends(get_db),
) -> CompanyPublicInfo:
    """Public company details for rendering the DSR form. No authentication."""
    company = await CompanyService(db).get_company_by_identifier(identifier)
    if not company:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")

    return CompanyPublicInfo(name=company.name, identifier=company.dsr_form_identifier)


@router.get("/dashboard-info", response_model=CompanyDashboardInfo)
async def get_dashboard_info(
    db: AsyncSession = Depends(get_db),
    session: AuthSession = Depends(get_current_session),
) -> CompanyDashboardInfo:
    """Company summary for the signed-in admin."""
    company = await CompanyService(db).get_company_by_admin(session.user.id)
    if not company:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No company found for this user")

    return CompanyDashboardInfo(
        id=company.id,
        name=company.name,
        dsr_form_identifier=company.dsr_form_identifier,
        admin_email=company.admin_email,
    )
