"""Audit entries for authentication events.

The auth provider calls these from its session hooks. A failed audit write
must never break sign-in, so every helper logs and swallows its own errors.
Entries are committed in their own session; the caller's session is never
left in a failed state.
"""
from typing import Optional

import structlog

from dsrdesk.models.audit_log import AuditAction, ResourceType
from dsrdesk.schemas.audit_log import AuditLogContext, AuditMetadata
from dsrdesk.services.audit_service import AuditService

logger = structlog.get_logger(__name__)


async def _record(
    audit: AuditService,
    action: AuditAction,
    resource_type: ResourceType,
    resource_id: str,
    metadata: AuditMetadata,
    context: AuditLogContext,
) -> None:
    try:
        await audit.create_audit_log_detached(action, resource_type, resource_id, metadata=metadata, context=context)
    except Exception as e:
        logger.error("auth_audit_failed", action=action.value, resource_id=resource_id, error=str(e))


async def log_user_login(
    audit: AuditService,
    user_id: str,
    session_id: str,
    email: Optional[str] = None,
    name: Optional[str] = None,
    context: Optional[AuditLogContext] = None,
) -> None:
    """Record a successful sign-in against the new session."""
    await _record(
        audit,
        AuditAction.USER_LOGIN,
        ResourceType.SESSION,
        session_id,
        AuditMetadata(description="User logged in"),
        (context or AuditLogContext()).model_copy(
            update={"user_id": user_id, "user_email": email, "user_name": name}
        ),
    )


async def log_user_logout(
    audit: AuditService,
    user_id: str,
    session_id: str,
    context: Optional[AuditLogContext] = None,
) -> None:
    """Record a sign-out."""
    await _record(
        audit,
        AuditAction.USER_LOGOUT,
        ResourceType.SESSION,
        session_id,
        AuditMetadata(description="User logged out"),
        (context or AuditLogContext()).model_copy(update={"user_id": user_id}),
    )


async def log_user_registration(
    audit: AuditService,
    user_id: str,
    email: str,
    name: Optional[str] = None,
    context: Optional[AuditLogContext] = None,
) -> None:
    """Record a new account."""
    await _record(
        audit,
        AuditAction.USER_REGISTER,
        ResourceType.USER,
        user_id,
        AuditMetadata(description=f"User {email} registered"),
        (context or AuditLogContext()).model_copy(
            update={"user_id": user_id, "user_email": email, "user_name": name}
        ),
    )


async def log_password_change(
    audit: AuditService,
    user_id: str,
    context: Optional[AuditLogContext] = None,
) -> None:
    await _record(
        audit,
        AuditAction.USER_PASSWORD_CHANGE,
        ResourceType.USER,
        user_id,
        AuditMetadata(description="Password changed"),
        (context or AuditLogContext()).model_copy(update={"user_id": user_id}),
    )
