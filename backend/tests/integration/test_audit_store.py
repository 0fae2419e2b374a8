"""Integration tests for the audit store."""
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from dsrdesk.models.audit_log import AuditAction, ResourceType
from dsrdesk.schemas.audit_log import AuditLogContext, AuditLogFilter, AuditMetadata
from dsrdesk.services.audit_service import AuditService
from utils.factories import SessionFactory


@pytest.mark.asyncio
async def test_create_fills_severity_and_timestamp(db_session: AsyncSession) -> None:
    """Severity is derived from the action when the caller omits it."""
    service = AuditService(db_session)
    company_id = uuid4()

    entry_id = await service.create_audit_log(
        AuditAction.DSR_STATUS_CHANGE,
        ResourceType.DSR_REQUEST,
        "dsr-1",
        metadata=AuditMetadata(description="status changed"),
        context=AuditLogContext(company_id=company_id, user_id="u1"),
    )

    page = await service.get_audit_logs(company_id=company_id)
    assert page.total == 1
    log = page.logs[0]
    assert log.id == entry_id
    assert log.metadata["severity"] == "HIGH"
    assert log.metadata["description"] == "status changed"
    assert log.timestamp is not None
    assert log.user_id == "u1"


@pytest.mark.asyncio
async def test_explicit_severity_is_kept(db_session: AsyncSession) -> None:
    service = AuditService(db_session)
    await service.create_audit_log(
        AuditAction.USER_LOGIN,
        ResourceType.SESSION,
        "s1",
        metadata={"severity": "CRITICAL", "reason": "suspicious"},
    )

    page = await service.get_audit_logs(resource_id="s1")
    assert page.logs[0].metadata == {"severity": "CRITICAL", "reason": "suspicious"}


@pytest.mark.asyncio
async def test_timestamps_are_non_decreasing(db_session: AsyncSession) -> None:
    service = AuditService(db_session)
    for i in range(5):
        await service.create_audit_log(AuditAction.DSR_VIEW, ResourceType.DSR_REQUEST, f"dsr-{i}")

    page = await service.get_audit_logs()
    written_at = {log.resource_id: log.timestamp for log in page.logs}
    timestamps = [written_at[f"dsr-{i}"] for i in range(5)]
    assert timestamps == sorted(timestamps)


@pytest.mark.asyncio
async def test_pagination(db_session: AsyncSession) -> None:
    """8 entries in pages of 5 give 5 then 3, with no overlap."""
    service = AuditService(db_session)
    company_id = uuid4()
    context = AuditLogContext(company_id=company_id)
    for i in range(8):
        await service.create_audit_log(AuditAction.DSR_VIEW, ResourceType.DSR_REQUEST, f"dsr-{i}", context=context)

    first = await service.get_audit_logs(AuditLogFilter(company_id=company_id, limit=5, skip=0))
    second = await service.get_audit_logs(AuditLogFilter(company_id=company_id, limit=5, skip=5))

    assert len(first.logs) == 5
    assert first.total == 8
    assert first.has_more is True
    assert len(second.logs) == 3
    assert second.total == 8
    assert second.has_more is False
    assert not {log.id for log in first.logs} & {log.id for log in second.logs}


@pytest.mark.asyncio
async def test_filter_by_action(db_session: AsyncSession) -> None:
    service = AuditService(db_session)
    for action in [
        AuditAction.DSR_CREATE,
        AuditAction.USER_LOGIN,
        AuditAction.DSR_CREATE,
        AuditAction.USER_LOGIN,
        AuditAction.DSR_CREATE,
    ]:
        await service.create_audit_log(action, ResourceType.DSR_REQUEST, "dsr-1")

    page = await service.get_audit_logs(action=AuditAction.DSR_CREATE)
    assert page.total == 3
    assert all(log.action == AuditAction.DSR_CREATE for log in page.logs)


@pytest.mark.asyncio
async def test_filter_by_company_and_user(db_session: AsyncSession) -> None:
    service = AuditService(db_session)
    company_a, company_b = uuid4(), uuid4()
    await service.create_audit_log(
        AuditAction.DSR_VIEW, ResourceType.DSR_REQUEST, "1", context=AuditLogContext(company_id=company_a, user_id="x")
    )
    await service.create_audit_log(
        AuditAction.DSR_VIEW, ResourceType.DSR_REQUEST, "2", context=AuditLogContext(company_id=company_a, user_id="y")
    )
    await service.create_audit_log(
        AuditAction.DSR_VIEW, ResourceType.DSR_REQUEST, "3", context=AuditLogContext(company_id=company_b, user_id="x")
    )

    assert (await service.get_audit_logs(company_id=company_a)).total == 2
    assert (await service.get_audit_logs(company_id=company_a, user_id="x")).total == 1
    assert (await service.get_audit_logs(user_id="x")).total == 2


@pytest.mark.asyncio
async def test_company_id_string_is_normalised(db_session: AsyncSession) -> None:
    service = AuditService(db_session)
    company_id = uuid4()
    await service.create_audit_log(
        AuditAction.COMPANY_CREATE,
        ResourceType.COMPANY,
        company_id,
        context=AuditLogContext(company_id=str(company_id)),
    )

    page = await service.get_audit_logs(company_id=company_id)
    assert page.total == 1
    assert page.logs[0].company_id == company_id
    assert page.logs[0].resource_id == str(company_id)


@pytest.mark.asyncio
async def test_invalid_company_id_is_rejected(db_session: AsyncSession) -> None:
    service = AuditService(db_session)
    with pytest.raises(ValueError):
        await service.create_audit_log(
            AuditAction.DSR_VIEW,
            ResourceType.DSR_REQUEST,
            "1",
            context=AuditLogContext(company_id="not-a-uuid"),
        )


@pytest.mark.asyncio
async def test_date_range_is_inclusive(db_session: AsyncSession) -> None:
    service = AuditService(db_session)
    await service.create_audit_log(AuditAction.DSR_VIEW, ResourceType.DSR_REQUEST, "1")
    await service.create_audit_log(AuditAction.DSR_VIEW, ResourceType.DSR_REQUEST, "2")

    everything = await service.get_audit_logs(sort_order="asc")
    first_ts = everything.logs[0].timestamp
    last_ts = everything.logs[-1].timestamp

    exact = await service.get_audit_logs(start_date=first_ts, end_date=last_ts)
    assert exact.total == 2

    future = await service.get_audit_logs(start_date=last_ts + timedelta(minutes=1))
    assert future.total == 0

    past = await service.get_audit_logs(end_date=first_ts - timedelta(minutes=1))
    assert past.total == 0


@pytest.mark.asyncio
async def test_aware_dates_compare_as_utc(db_session: AsyncSession) -> None:
    service = AuditService(db_session)
    await service.create_audit_log(AuditAction.DSR_VIEW, ResourceType.DSR_REQUEST, "1")

    now = datetime.now(timezone.utc)
    plus_two = timezone(timedelta(hours=2))
    page = await service.get_audit_logs(
        start_date=(now - timedelta(minutes=5)).astimezone(plus_two),
        end_date=(now + timedelta(minutes=5)).astimezone(plus_two),
    )
    assert page.total == 1


@pytest.mark.asyncio
async def test_resource_history_is_scoped_to_resource(db_session: AsyncSession) -> None:
    service = AuditService(db_session)
    company_id = uuid4()
    context = AuditLogContext(company_id=company_id)
    await service.create_audit_log(AuditAction.DSR_CREATE, ResourceType.DSR_REQUEST, "dsr-1", context=context)
    await service.create_audit_log(AuditAction.DSR_VIEW, ResourceType.DSR_REQUEST, "dsr-1", context=context)
    await service.create_audit_log(AuditAction.DSR_VIEW, ResourceType.DSR_REQUEST, "dsr-2", context=context)
    await service.create_audit_log(AuditAction.COMPANY_UPDATE, ResourceType.COMPANY, "dsr-1", context=context)

    page = await service.get_resource_audit_logs(ResourceType.DSR_REQUEST, "dsr-1", company_id=company_id)
    assert page.total == 2
    assert {log.action for log in page.logs} == {AuditAction.DSR_CREATE, AuditAction.DSR_VIEW}
    assert all(log.resource_id == "dsr-1" for log in page.logs)

    other_company = await service.get_resource_audit_logs(ResourceType.DSR_REQUEST, "dsr-1", company_id=uuid4())
    assert other_company.total == 0


@pytest.mark.asyncio
async def test_identity_falls_back_to_session(db_session: AsyncSession) -> None:
    service = AuditService(db_session)
    session = SessionFactory.create(user_id="u-42", email="admin@example.com", name="Admin")

    await service.create_audit_log(
        AuditAction.USER_LOGIN,
        ResourceType.SESSION,
        session.session.id,
        context=AuditLogContext(session=session, ip_address="1.2.3.4"),
    )

    log = (await service.get_audit_logs(user_id="u-42")).logs[0]
    assert log.user_email == "admin@example.com"
    assert log.user_name == "Admin"
    assert log.ip_address == "1.2.3.4"


@pytest.mark.asyncio
async def test_explicit_context_wins_over_session(db_session: AsyncSession) -> None:
    service = AuditService(db_session)
    session = SessionFactory.create(user_id="u-1", email="session@example.com")

    await service.create_audit_log(
        AuditAction.DSR_VIEW,
        ResourceType.DSR_REQUEST,
        "1",
        context=AuditLogContext(session=session, user_email="explicit@example.com"),
    )

    log = (await service.get_audit_logs()).logs[0]
    assert log.user_id == "u-1"
    assert log.user_email == "explicit@example.com"


@pytest.mark.asyncio
async def test_sort_by_action(db_session: AsyncSession) -> None:
    service = AuditService(db_session)
    for action in [AuditAction.USER_LOGIN, AuditAction.COMPANY_CREATE, AuditAction.DSR_VIEW]:
        await service.create_audit_log(action, ResourceType.SESSION, "1")

    page = await service.get_audit_logs(sort_by="action", sort_order="asc")
    assert [log.action.value for log in page.logs] == ["COMPANY_CREATE", "DSR_VIEW", "USER_LOGIN"]
