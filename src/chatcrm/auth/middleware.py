"""
Authentication dependency resolving the caller from the bearer token.
"""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from chatcrm.auth.jwt import JWTService
from chatcrm.auth.schemas import CurrentUser
from chatcrm.config import Settings, get_settings
from chatcrm.shared.exceptions import AuthenticationError
from chatcrm.shared.logging import get_logger

logger = get_logger(__name__)
security = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)] = None,
    settings: Settings = Depends(get_settings),
) -> CurrentUser:
    """Extract and validate the caller from the session JWT.

    Raises:
        AuthenticationError: If no token is supplied or it fails verification.
    """
    if credentials is None:
        logger.warning(
            "Missing authentication credentials",
            extra={
                "endpoint": str(request.url.path),
                "method": request.method,
                "client_ip": request.client.host if request.client else "unknown",
            },
        )
        raise AuthenticationError(
            details={"code": "MISSING_CREDENTIALS", "message": "Authentication credentials required"},
        )

    try:
        payload = JWTService(settings).verify_token(credentials.credentials)
    except AuthenticationError as e:
        logger.info(
            "Authentication failed",
            extra={
                "endpoint": str(request.url.path),
                "method": request.method,
                "code": e.code,
            },
        )
        raise AuthenticationError(details={"code": e.code, "message": e.message}) from e

    return CurrentUser(
        id=payload.sub,
        email=payload.email or "",
        role=payload.role or "authenticated",
    )


CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]
