"""FastAPI dependencies for database sessions, authentication and services."""
from typing import Optional

import jwt
import structlog
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from dsrdesk.config import settings
from dsrdesk.database import get_db  # noqa: F401  re-exported for routers
from dsrdesk.integrations.notification_service import NotificationService
from dsrdesk.schemas.session import AuthSession, SessionInfo, SessionUser
from dsrdesk.security.crypto import CryptoConfig, FieldCipher
from dsrdesk.security.pii import PIICodec

logger = structlog.get_logger(__name__)

# Missing credentials are handled here so they map to 401, not 403
security = HTTPBearer(auto_error=False)


def decode_session_token(token: str) -> AuthSession:
    """
    Turn a provider-issued session token into an AuthSession.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired or lacks ``sub``/``sid``
    """
    payload = jwt.decode(
        token,
        settings.jwt_secret_key,
        algorithms=[settings.jwt_algorithm],
        options={"require": ["sub", "sid"]},
    )
    user_id = str(payload["sub"])
    return AuthSession(
        session=SessionInfo(id=str(payload["sid"]), user_id=user_id),
        user=SessionUser(id=user_id, email=payload.get("email"), name=payload.get("name")),
    )


async def get_current_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthSession:
    """
    Get the authenticated session from the bearer token.

    Raises:
        HTTPException: 401 if the token is missing, invalid or expired
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = credentials.credentials

    try:
        session = decode_session_token(token)
    except jwt.ExpiredSignatureError:
        logger.warning("token_expired")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidTokenError as e:
        logger.warning("invalid_token", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    logger.info("user_authenticated", user_id=session.user.id, session_id=session.session.id)
    return session


def build_pii_codec() -> PIICodec:
    """
    Codec over the configured key material.

    Raises:
        CryptoConfigError: If strict mode refuses the development fallback
    """
    return PIICodec(FieldCipher(CryptoConfig.from_settings(settings)))


def get_pii_codec(request: Request) -> PIICodec:
    """Codec built at startup and kept on the application state."""
    codec = getattr(request.app.state, "pii_codec", None)
    if codec is None:
        codec = build_pii_codec()
        request.app.state.pii_codec = codec
    return codec


def get_notification_service() -> NotificationService:
    """Email sender configured from settings."""
    return NotificationService(api_key=settings.resend_api_key)
