"""
Authentication API routes.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.security import OAuth2PasswordRequestForm

from amber_drive.api.dependencies import AuthDep, DatabaseDep
from amber_drive.schemas import AuthUserResponse, TokenResponse
from amber_drive.services.auth_service import AuthService

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
async def login(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    request: Request,
    db: DatabaseDep,
):
    """
    Authenticate an admin and get an access token.

    - **username**: Admin username
    - **password**: Admin password
    """
    auth_service = AuthService(db)

    return await auth_service.authenticate(
        username=form_data.username,
        password=form_data.password,
        ip_address=request.client.host if request.client else None,
    )


@router.get("/me", response_model=AuthUserResponse)
async def get_current_user_info(auth: AuthDep):
    """Get the signed-in admin."""
    return AuthUserResponse(id=auth.user_id, name=auth.username, email=auth.email)
