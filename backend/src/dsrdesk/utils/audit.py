"""Audit helpers for request handlers.

``extract_audit_context`` turns an inbound request into the caller context
recorded on audit entries. ``audited_operation`` runs a coroutine and writes
exactly one audit entry for it, whether it succeeds or fails.
"""
from typing import Any, Awaitable, Callable, Optional, TypeVar

import structlog

from dsrdesk.schemas.audit_log import AuditLogContext, CreateAuditLogParams
from dsrdesk.schemas.session import AuthSession
from dsrdesk.services.audit_service import AuditService

logger = structlog.get_logger(__name__)

T = TypeVar("T")

UNKNOWN = "unknown"

CLIENT_IP_HEADERS = ("x-forwarded-for", "x-real-ip", "cf-connecting-ip")


def _client_ip(headers: Any) -> str:
    for header in CLIENT_IP_HEADERS:
        value = headers.get(header)
        if value:
            # X-Forwarded-For can contain multiple IPs, take the first (client)
            return value.split(",")[0].strip() or UNKNOWN
    return UNKNOWN


def extract_audit_context(request: Any, session: Optional[AuthSession] = None) -> AuditLogContext:
    """
    Extract caller network context from a request.

    Args:
        request: Anything with a ``headers`` mapping (Starlette Request)
        session: Authenticated session, if any

    Returns:
        AuditLogContext with session, ip_address and user_agent
    """
    headers = request.headers
    return AuditLogContext(
        session=session,
        ip_address=_client_ip(headers),
        user_agent=headers.get("user-agent") or UNKNOWN,
    )


async def audited_operation(
    audit_service: AuditService,
    operation: Callable[[], Awaitable[T]],
    params: CreateAuditLogParams,
) -> T:
    """
    Run an operation and record it in the audit trail.

    On success the entry is written with ``params`` as given, in the
    caller's session, so it commits or rolls back with the operation's own
    writes. On failure the entry's metadata gains ``error`` and
    ``success=False``; it is written and committed in a separate session so
    it survives the caller's rollback, and the original exception is
    re-raised. If that failure entry cannot be written, the write error is
    logged and the original exception still propagates.

    Args:
        audit_service: Audit store to write to
        operation: Zero-argument coroutine function
        params: Audit entry to write

    Returns:
        Whatever the operation returned
    """
    try:
        result = await operation()
    except Exception as exc:
        failure_metadata = params.metadata.model_copy(
            update={"error": str(exc) or type(exc).__name__, "success": False}
        )
        try:
            await audit_service.create_audit_log_detached(
                params.action,
                params.resource_type,
                params.resource_id,
                metadata=failure_metadata,
                context=params.context,
            )
        except Exception as audit_exc:
            logger.error(
                "audit_failure_record_not_written",
                action=params.action.value,
                resource_id=params.resource_id,
                operation_error=str(exc),
                audit_error=str(audit_exc),
            )
        raise

    await audit_service.create_audit_log(
        params.action,
        params.resource_type,
        params.resource_id,
        metadata=params.metadata,
        context=params.context,
    )
    return result
