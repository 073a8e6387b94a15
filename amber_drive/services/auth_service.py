"""
Authentication service.

Handles admin sign-in and turns bearer tokens into an explicit AuthContext
that every other service receives at construction.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from amber_drive.config.settings import settings
from amber_drive.exceptions import ConflictError, Unauthorized, ValidationError
from amber_drive.models.user import AdminUser
from amber_drive.utils.logging import ServiceLogger, audit_logger
from amber_drive.utils.security import (
    create_access_token, decode_token, get_password_hash, verify_password,
)


@dataclass(frozen=True)
class AuthContext:
    """Verified caller identity, produced at the request boundary."""
    user_id: int
    username: str
    email: str | None = None


def require_auth(auth: AuthContext | None) -> AuthContext:
    """Reject operations that carry no verified caller identity."""
    if not isinstance(auth, AuthContext):
        raise Unauthorized()
    return auth


class AuthService:
    """
    Service for admin authentication.

    Provides:
    - Username/password sign-in returning a bearer token
    - Token validation into an AuthContext
    - Admin account creation
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.logger = ServiceLogger("auth")

    async def authenticate(
        self,
        username: str,
        password: str,
        ip_address: str | None = None,
    ) -> dict[str, Any]:
        """
        Authenticate an admin and issue an access token.

        Raises:
            Unauthorized: Unknown user, wrong password or inactive account
        """
        with self.logger.operation("authenticate", username=username) as op:
            user = await self._get_user_by_username(username)
            if not user:
                audit_logger.login(username, success=False, ip_address=ip_address, reason="user_not_found")
                raise Unauthorized("Invalid username or password")

            if not verify_password(password, user.hashed_password):
                audit_logger.login(username, success=False, ip_address=ip_address, reason="invalid_password")
                raise Unauthorized("Invalid username or password")

            if not user.is_active:
                audit_logger.login(username, success=False, ip_address=ip_address, reason="account_inactive")
                raise Unauthorized("Account is disabled")

            user.last_login_at = datetime.utcnow()
            await self.session.flush()

            access_token = create_access_token({
                "sub": str(user.id),
                "name": user.username,
                "email": user.email,
            })

            audit_logger.login(username, success=True, ip_address=ip_address)
            op["user_id"] = user.id

        return {
            "access_token": access_token,
            "token_type": "bearer",
            "expires_in": settings.auth.access_token_expire_minutes * 60,
            "user": {
                "id": user.id,
                "name": user.username,
                "email": user.email,
            },
        }

    def validate_token(self, token: str | None) -> AuthContext:
        """
        Validate an access token.

        Raises:
            Unauthorized: Missing, malformed, expired or non-access token
        """
        if not token:
            raise Unauthorized()

        payload = decode_token(token)
        if not payload or payload.get("type") != "access":
            raise Unauthorized("Invalid or expired token")

        try:
            user_id = int(payload["sub"])
        except (KeyError, TypeError, ValueError):
            raise Unauthorized("Invalid or expired token")

        return AuthContext(
            user_id=user_id,
            username=payload.get("name") or "",
            email=payload.get("email"),
        )

    async def create_admin(
        self,
        username: str,
        password: str,
        email: str | None = None,
    ) -> AdminUser:
        """
        Create a back-office admin account.

        Raises:
            ValidationError: Blank username or password
            ConflictError: Username already taken
        """
        username = (username or "").strip()
        if not username or not password:
            raise ValidationError("Username and password are required")

        if await self._get_user_by_username(username):
            raise ConflictError(f"Admin {username} already exists", username=username)

        user = AdminUser(
            username=username,
            email=email,
            hashed_password=get_password_hash(password),
        )
        self.session.add(user)

        try:
            await self.session.flush()
        except IntegrityError as e:
            raise ConflictError(f"Admin {username} already exists", username=username) from e

        audit_logger.record("create", "admin_user", user.id, actor_id=None, username=username)
        return user

    async def _get_user_by_username(self, username: str) -> AdminUser | None:
        result = await self.session.execute(
            select(AdminUser).where(AdminUser.username == username)
        )
        return result.scalar_one_or_none()
