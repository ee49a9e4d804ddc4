# -*- coding: utf-8 -*-
"""Auth: API endpoints."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from ..app_db import AppDatabase, get_db
from ..config import Settings
from .models import AuthResponse, LoginRequest, RegisterRequest, UserPublic
from .security import (
    TOKEN_COOKIE_NAME,
    create_access_token,
    decode_token,
    get_current_user,
    get_settings,
    get_token_from_request,
    hash_password,
    verify_password,
)
from .storage import create_auth_session, create_user, get_user_by_email, public_user, revoke_auth_session

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def set_auth_cookie(resp: Response, token: str, settings: Settings) -> None:
    resp.set_cookie(
        TOKEN_COOKIE_NAME,
        token,
        httponly=True,
        secure=bool(settings.cookie_secure),
        samesite="lax",
        max_age=int(settings.token_ttl_days) * 24 * 60 * 60,
        path="/",
    )


def _issue_token(db: AppDatabase, settings: Settings, user: Dict[str, Any]) -> str:
    session = create_auth_session(db, user_id=user["id"], ttl_days=settings.token_ttl_days)
    return create_access_token(user_id=user["id"], email=user["email"], session_id=session["id"], settings=settings)


@router.post("/register", response_model=AuthResponse, status_code=201, summary="Register a new user")
def register(
    request: RegisterRequest,
    response: Response,
    db: AppDatabase = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    if get_user_by_email(db, request.email):
        raise HTTPException(status_code=409, detail="User already exists")

    user = create_user(db, email=request.email, password_hash=hash_password(request.password))
    token = _issue_token(db, settings, user)
    set_auth_cookie(response, token, settings)
    return AuthResponse(user=UserPublic(**public_user(user)), token=token)


@router.post("/login", response_model=AuthResponse, summary="Login")
def login(
    request: LoginRequest,
    response: Response,
    db: AppDatabase = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user = get_user_by_email(db, request.email)
    if not user or not verify_password(request.password, user.get("password_hash")):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    token = _issue_token(db, settings, user)
    set_auth_cookie(response, token, settings)
    return AuthResponse(user=UserPublic(**public_user(user)), token=token)


@router.post("/logout", summary="Logout")
def logout(
    request: Request,
    response: Response,
    db: AppDatabase = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    token = get_token_from_request(request)
    session_id: Optional[str] = None
    if token:
        try:
            session_id = decode_token(token, settings.jwt_secret).get("jti")
        except HTTPException:
            session_id = None
    if session_id:
        revoke_auth_session(db, str(session_id))
    response.delete_cookie(TOKEN_COOKIE_NAME, path="/")
    return {"status": "ok"}


@router.get("/me", response_model=UserPublic, summary="Get current user")
def me(user: dict = Depends(get_current_user)):
    return UserPublic(**public_user(user))
