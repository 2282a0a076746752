"""
JWT handling for identity-provider sessions.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Protocol
from uuid import UUID

import jwt
from pydantic import ValidationError

from chatcrm.auth.schemas import TokenPayload
from chatcrm.config import Settings, get_settings
from chatcrm.shared.exceptions import InvalidTokenError, TokenExpiredError
from chatcrm.shared.logging import get_logger

logger = get_logger(__name__)


class JWTServiceProtocol(Protocol):
    """Protocol for JWT service operations."""

    def create_access_token(
        self,
        user_id: UUID,
        email: str | None = None,
        role: str = "authenticated",
    ) -> str: ...

    def verify_token(self, token: str) -> TokenPayload: ...


class JWTService:
    """Service for creating and verifying session JWTs."""

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize JWT service.

        Args:
            settings: Application settings. Uses default if not provided.
        """
        self._settings = settings or get_settings()

    def create_access_token(
        self,
        user_id: UUID,
        email: str | None = None,
        role: str = "authenticated",
        expires_delta: timedelta | None = None,
    ) -> str:
        """Create an access token shaped like the identity provider's.

        Args:
            user_id: Account ID, carried in ``sub``.
            email: Account email.
            role: Identity-provider role claim.
            expires_delta: Lifetime override; negative values mint expired tokens.

        Returns:
            Encoded JWT access token.
        """
        now = datetime.now(timezone.utc)
        lifetime = expires_delta or timedelta(
            minutes=self._settings.jwt_access_token_expire_minutes
        )

        payload: dict[str, Any] = {
            "sub": str(user_id),
            "iat": int(now.timestamp()),
            "exp": int((now + lifetime).timestamp()),
            "role": role,
        }
        if email:
            payload["email"] = email
        if self._settings.jwt_audience:
            payload["aud"] = self._settings.jwt_audience

        return jwt.encode(
            payload,
            self._settings.jwt_secret_key,
            algorithm=self._settings.jwt_algorithm,
        )

    def verify_token(self, token: str) -> TokenPayload:
        """Verify a token and return its claims.

        Args:
            token: Encoded JWT.

        Returns:
            Validated token payload.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If the signature, audience or claims are invalid.
        """
        try:
            claims = jwt.decode(
                token,
                self._settings.jwt_secret_key,
                algorithms=[self._settings.jwt_algorithm],
                audience=self._settings.jwt_audience or None,
                options={
                    "require": ["sub", "exp"],
                    "verify_aud": bool(self._settings.jwt_audience),
                },
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError() from e
        except jwt.InvalidTokenError as e:
            logger.warning("Token rejected", extra={"error": str(e)})
            raise InvalidTokenError(details={"error": str(e)}) from e

        try:
            return TokenPayload.model_validate(claims)
        except ValidationError as e:
            raise InvalidTokenError(
                message="Token claims are malformed",
                details={"error": str(e)},
            ) from e
