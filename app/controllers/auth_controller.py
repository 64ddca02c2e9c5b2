"""
Auth controller — registration, login, token refresh & current user.

Register, login and refresh are PUBLIC (no permission dependency).
`/auth/me` only requires a valid access token.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.models.user import User
from app.rbac.dependencies import get_current_user
from app.schemas import (
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    TokenResponse,
    UserOut,
)
from app.services import auth_service

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/register", response_model=UserOut, status_code=201)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """Create an account; the default role is attached when configured."""
    user = await auth_service.register_user(body.email, body.password, body.full_name, db)
    return auth_service.user_out(user)


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Authenticate with email + password → receive JWT pair."""
    return await auth_service.authenticate_user(body.email, body.password, db)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    body: RefreshTokenRequest,
    db: AsyncSession = Depends(get_db),
):
    """Exchange a valid refresh token for a new access + refresh pair."""
    return await auth_service.refresh_access_token(body.refresh_token, db)


@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(get_current_user)):
    """The caller's profile with roles and effective permissions."""
    return auth_service.user_out(user)
