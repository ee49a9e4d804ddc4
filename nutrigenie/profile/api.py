# -*- coding: utf-8 -*-
"""Profile: API endpoints (identity, onboarding, health form, stats, account deletion)."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response

from ..app_db import AppDatabase, get_db
from ..auth.models import UserPublic
from ..auth.security import TOKEN_COOKIE_NAME, get_current_user, get_settings
from ..auth.storage import normalize_email, public_user
from ..chat.storage import count_threads
from ..config import Settings
from ..meal_plans.storage import count_meal_plans, list_meal_plans
from .models import (
    AccountDeleteRequest,
    DashboardStats,
    HealthProfileRequest,
    LatestMealPlan,
    OnboardingRequest,
    ProfileResponse,
    ProfileUpdateRequest,
)
from .storage import delete_account, update_health_profile, update_identity, update_onboarding

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/profile", tags=["Profile"])

DELETE_CONFIRMATION = "DELETE"


def _profile(user: dict) -> ProfileResponse:
    return ProfileResponse(user=UserPublic(**public_user(user)))


@router.get("", response_model=ProfileResponse, summary="Get the signed-in user's profile")
def get_profile(user: dict = Depends(get_current_user)):
    return _profile(user)


@router.patch("", response_model=ProfileResponse, summary="Update name and/or avatar")
def patch_profile(
    request: ProfileUpdateRequest,
    user: dict = Depends(get_current_user),
    db: AppDatabase = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    # Avatars arrive inline as data URLs.
    if request.image and len(request.image.encode("utf-8")) > settings.max_avatar_bytes:
        raise HTTPException(status_code=400, detail="Image too large")
    updated = update_identity(db, user_id=user["id"], name=request.name, image=request.image)
    return _profile(updated)


@router.put("/onboarding", response_model=ProfileResponse, summary="Save onboarding answers")
def put_onboarding(
    request: OnboardingRequest,
    user: dict = Depends(get_current_user),
    db: AppDatabase = Depends(get_db),
):
    return _profile(update_onboarding(db, user_id=user["id"], data=request))


@router.put("/health", response_model=ProfileResponse, summary="Save the health form")
def put_health_profile(
    request: HealthProfileRequest,
    user: dict = Depends(get_current_user),
    db: AppDatabase = Depends(get_db),
):
    return _profile(update_health_profile(db, user_id=user["id"], data=request))


@router.get("/stats", response_model=DashboardStats, summary="Dashboard counters")
def get_stats(user: dict = Depends(get_current_user), db: AppDatabase = Depends(get_db)):
    latest = list_meal_plans(db, user_id=user["id"], limit=1)
    latest_plan = None
    if latest:
        plan = latest[0]
        latest_plan = LatestMealPlan(
            id=plan["id"],
            title=plan["title"],
            total_nutrients=plan["total_nutrients"],
            created_at=plan["created_at"],
        )
    return DashboardStats(
        meal_plan_count=count_meal_plans(db, user_id=user["id"]),
        thread_count=count_threads(db, user_id=user["id"]),
        latest_meal_plan=latest_plan,
        health_profile_completed=bool(user.get("health_profile_completed")),
    )


@router.delete("", summary="Delete the account and all owned data")
def delete_profile(
    request: AccountDeleteRequest,
    response: Response,
    user: dict = Depends(get_current_user),
    db: AppDatabase = Depends(get_db),
):
    if request.confirmation != DELETE_CONFIRMATION:
        raise HTTPException(status_code=400, detail='Type "DELETE" to confirm')
    if normalize_email(request.email) != normalize_email(user["email"]):
        raise HTTPException(status_code=400, detail="Email does not match this account")

    counts = delete_account(db, user_id=user["id"])
    logger.info("Deleted account %s (%s)", user["id"], counts)
    response.delete_cookie(TOKEN_COOKIE_NAME, path="/")
    return {"success": True}
