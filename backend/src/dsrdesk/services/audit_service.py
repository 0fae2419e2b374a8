"""Audit store: append-only writes and filtered reads of the audit trail."""

from typing import Any, Optional, Union
from uuid import UUID

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dsrdesk.database import get_session_factory
from dsrdesk.models.audit_log import AuditAction, AuditLog, ResourceType, Severity
from dsrdesk.models.base import as_naive_utc, utcnow
from dsrdesk.schemas.audit_log import AuditLog as AuditLogSchema
from dsrdesk.schemas.audit_log import AuditLogContext, AuditLogFilter, AuditLogPage, AuditMetadata

logger = structlog.get_logger(__name__)

CRITICAL_ACTIONS = frozenset({
    AuditAction.COMPANY_DELETE,
    AuditAction.DSR_DELETE,
    AuditAction.ADMIN_ROLE_CHANGE,
    AuditAction.DATA_EXPORT,
})

HIGH_ACTIONS = frozenset({
    AuditAction.USER_PASSWORD_CHANGE,
    AuditAction.COMPANY_UPDATE,
    AuditAction.DSR_STATUS_CHANGE,
    AuditAction.ADMIN_ACCESS_GRANTED,
})

MEDIUM_ACTIONS = frozenset({
    AuditAction.COMPANY_CREATE,
    AuditAction.DSR_CREATE,
    AuditAction.DSR_UPDATE,
    AuditAction.USER_REGISTER,
    AuditAction.DSR_NOTE_ADD,
})

SORT_COLUMNS = {
    "timestamp": AuditLog.timestamp,
    "action": AuditLog.action,
    "resource_type": AuditLog.resource_type,
}


def get_severity_for_action(action: Union[AuditAction, str]) -> Severity:
    """
    Classify an action by sensitivity.

    Checked in order CRITICAL, HIGH, MEDIUM; anything else, including
    strings that are not a known action, is LOW.
    """
    try:
        action = AuditAction(action)
    except ValueError:
        return Severity.LOW

    if action in CRITICAL_ACTIONS:
        return Severity.CRITICAL
    if action in HIGH_ACTIONS:
        return Severity.HIGH
    if action in MEDIUM_ACTIONS:
        return Severity.MEDIUM
    return Severity.LOW


def normalize_company_id(company_id: Union[UUID, str, None]) -> Optional[UUID]:
    """
    Coerce a company id to UUID.

    Raises:
        ValueError: If a string is not a valid UUID
    """
    if company_id is None or isinstance(company_id, UUID):
        return company_id
    return UUID(str(company_id))


class AuditService:
    """Service layer for the audit trail."""

    def __init__(
        self,
        db: AsyncSession,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    ):
        """
        Initialize audit service.

        Args:
            db: Session shared with the caller's business writes
            session_factory: Source of sessions for detached writes; defaults
                to a factory over the engine ``db`` is bound to
        """
        self.db = db
        self.session_factory = session_factory

    async def create_audit_log(
        self,
        action: Union[AuditAction, str],
        resource_type: Union[ResourceType, str],
        resource_id: Union[UUID, str],
        metadata: Union[AuditMetadata, dict[str, Any], None] = None,
        context: Optional[AuditLogContext] = None,
    ) -> UUID:
        """
        Append one audit entry.

        Identity comes from explicit context fields first, then from the
        attached session. Severity is filled in from the action when the
        caller did not supply one. The timestamp is always assigned here.

        Args:
            action: Action performed
            resource_type: Kind of entity affected
            resource_id: Id of the entity affected
            metadata: Typed metadata or a plain mapping
            context: Caller identity and network context

        Returns:
            Id of the new entry

        Raises:
            ValueError: If action, resource_type or company_id is malformed
            SQLAlchemyError: If the write fails (logged, then re-raised)
        """
        action = AuditAction(action)
        resource_type = ResourceType(resource_type)
        context = context or AuditLogContext()
        if not isinstance(metadata, AuditMetadata):
            metadata = AuditMetadata.from_document(metadata)

        session = context.session
        document = metadata.to_document()
        document["severity"] = (metadata.severity or get_severity_for_action(action)).value

        entry = AuditLog(
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id),
            user_id=context.user_id or (session.session.user_id if session else None),
            user_email=context.user_email or (session.user.email if session else None),
            user_name=context.user_name or (session.user.name if session else None),
            company_id=normalize_company_id(context.company_id),
            audit_metadata=document,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
            timestamp=utcnow(),
        )

        try:
            self.db.add(entry)
            await self.db.flush()
        except Exception as e:
            logger.error(
                "audit_log_write_failed",
                action=action.value,
                resource_type=resource_type.value,
                resource_id=str(resource_id),
                error=str(e),
            )
            raise

        logger.info(
            "audit_log_created",
            audit_log_id=str(entry.id),
            action=action.value,
            resource_type=resource_type.value,
            resource_id=str(resource_id),
            severity=document["severity"],
        )
        return entry.id

    def _detached_session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self.session_factory is not None:
            return self.session_factory
        if self.db.bind is not None:
            return async_sessionmaker(self.db.bind, class_=AsyncSession, expire_on_commit=False, autoflush=False)

        return get_session_factory()

    async def create_audit_log_detached(
        self,
        action: Union[AuditAction, str],
        resource_type: Union[ResourceType, str],
        resource_id: Union[UUID, str],
        metadata: Union[AuditMetadata, dict[str, Any], None] = None,
        context: Optional[AuditLogContext] = None,
    ) -> UUID:
        """
        Append one audit entry in its own session and commit it.

        Used where the entry must outlive the caller's transaction, such as
        a failed operation whose session is about to be rolled back. The
        caller's session is left untouched either way.

        Raises:
            SQLAlchemyError: If the write or commit fails (the detached
                session is rolled back first)
        """
        async with self._detached_session_factory()() as audit_db:
            try:
                entry_id = await AuditService(audit_db).create_audit_log(
                    action, resource_type, resource_id, metadata=metadata, context=context
                )
                await audit_db.commit()
            except Exception:
                await audit_db.rollback()
                raise
        return entry_id

    async def get_audit_logs(self, filters: Optional[AuditLogFilter] = None, **options: Any) -> AuditLogPage:
        """
        Read audit entries matching a filter.

        Every supplied discrete field is an exact match; start_date and
        end_date bound the timestamp inclusively. ``total`` ignores
        skip/limit.

        Args:
            filters: Query options; keyword options build one when omitted

        Returns:
            AuditLogPage with logs, total and has_more
        """
        if filters is None:
            filters = AuditLogFilter(**options)

        conditions = []
        if filters.company_id:
            conditions.append(AuditLog.company_id == filters.company_id)
        if filters.user_id:
            conditions.append(AuditLog.user_id == filters.user_id)
        if filters.resource_type:
            conditions.append(AuditLog.resource_type == filters.resource_type)
        if filters.resource_id:
            conditions.append(AuditLog.resource_id == filters.resource_id)
        if filters.action:
            conditions.append(AuditLog.action == filters.action)
        if filters.start_date:
            conditions.append(AuditLog.timestamp >= as_naive_utc(filters.start_date))
        if filters.end_date:
            conditions.append(AuditLog.timestamp <= as_naive_utc(filters.end_date))

        sort_column = SORT_COLUMNS[filters.sort_by]
        direction = sort_column.asc() if filters.sort_order == "asc" else sort_column.desc()
        # id breaks ties so consecutive pages never overlap
        query = select(AuditLog).where(*conditions).order_by(direction, AuditLog.id)

        if filters.skip:
            query = query.offset(filters.skip)
        if filters.limit:
            query = query.limit(filters.limit)

        result = await self.db.execute(query)
        logs = [AuditLogSchema.model_validate(entry) for entry in result.scalars().all()]

        total = await self.db.scalar(select(func.count()).select_from(AuditLog).where(*conditions)) or 0

        return AuditLogPage(
            logs=logs,
            total=total,
            has_more=filters.skip + len(logs) < total,
        )

    async def get_resource_audit_logs(
        self,
        resource_type: Union[ResourceType, str],
        resource_id: Union[UUID, str],
        limit: Optional[int] = None,
        skip: int = 0,
        company_id: Optional[UUID] = None,
    ) -> AuditLogPage:
        """
        History of a single resource, newest first.

        Args:
            resource_type: Kind of entity
            resource_id: Entity id
            limit: Maximum entries to return
            skip: Entries to skip
            company_id: Restrict to one tenant

        Returns:
            AuditLogPage for the resource
        """
        return await self.get_audit_logs(
            AuditLogFilter(
                resource_type=resource_type,
                resource_id=str(resource_id),
                company_id=company_id,
                limit=limit,
                skip=skip,
            )
        )
