"""
FastAPI dependencies for the database session and the caller's AuthContext.
"""

from typing import Annotated

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from amber_drive.config.settings import settings
from amber_drive.database.base import get_session
from amber_drive.services.auth_service import AuthContext, AuthService

# auto_error=False so a missing token surfaces as the domain Unauthorized error
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.api_prefix}/auth/login",
    auto_error=False,
)


async def get_db() -> AsyncSession:
    """Get database session dependency."""
    async for session in get_session():
        yield session


DatabaseDep = Annotated[AsyncSession, Depends(get_db)]


async def get_auth_context(
    token: Annotated[str | None, Depends(oauth2_scheme)],
    db: DatabaseDep,
) -> AuthContext:
    """
    Resolve the bearer token into an AuthContext.

    Raises:
        Unauthorized: If the token is missing, invalid or expired
    """
    return AuthService(db).validate_token(token)


AuthDep = Annotated[AuthContext, Depends(get_auth_context)]
