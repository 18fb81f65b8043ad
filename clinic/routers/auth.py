# clinic/routers/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.config import settings
from clinic.core.responses import Envelope
from clinic.core.security import InvalidTokenError, create_access_token, decode_token, is_refresh_token
from clinic.db.sql import get_session
from clinic.dependencies import get_current_user
from clinic.modules.users.models import User
from clinic.modules.users.schemas import (
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenPair,
    UserPublic,
)
from clinic.modules.users.service import (
    EmailAlreadyExists,
    InvalidCredentials,
    login_user,
    register_user,
    to_public,
)

router = APIRouter(tags=["auth"])


@router.post(
    "/auth/register",
    response_model=Envelope[UserPublic],
    status_code=status.HTTP_201_CREATED,
    summary="Create a staff account",
    responses={409: {"description": "Email already registered"}},
)
async def auth_register(
    payload: RegisterRequest,
    session: AsyncSession = Depends(get_session),
):
    try:
        user_public = await register_user(session, payload)
    except EmailAlreadyExists:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="email_already_exists",
        )
    return Envelope(data=user_public, message="User created successfully")


@router.post(
    "/auth/login",
    response_model=TokenPair,
    summary="Obtain a Bearer token with email and password (JSON body)",
    responses={401: {"description": "Invalid credentials"}},
)
async def auth_login(
    payload: LoginRequest,
    session: AsyncSession = Depends(get_session),
):
    try:
        return await login_user(session, payload)
    except InvalidCredentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid_credentials",
        )


@router.post(
    "/auth/token",
    response_model=TokenPair,
    summary="OAuth2 password flow login (for Swagger UI)",
)
async def auth_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: AsyncSession = Depends(get_session),
):
    """
    Swagger sends form data: username (email) and password.
    """
    try:
        return await login_user(
            session, LoginRequest(email=form_data.username, password=form_data.password)
        )
    except InvalidCredentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid_credentials",
        )


@router.get("/auth/me", response_model=Envelope[UserPublic])
async def auth_me(current_user: User = Depends(get_current_user)):
    return Envelope(data=to_public(current_user))


@router.post(
    "/auth/refresh",
    response_model=TokenPair,
    summary="Exchange a refresh token for a new access token",
)
async def auth_refresh(request: RefreshRequest):
    try:
        payload = decode_token(request.refresh_token)
    except InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid_token",
        )

    if not is_refresh_token(payload):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid_token_type",
        )

    return TokenPair(
        access_token=create_access_token(subject=str(payload["sub"])),
        expires_in=settings.ACCESS_EXPIRES_MIN * 60,
        refresh_token=request.refresh_token,
    )
