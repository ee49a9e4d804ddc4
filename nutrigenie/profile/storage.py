# -*- coding: utf-8 -*-
"""Profile storage helpers (user attribute updates + account removal)."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import HTTPException

from ..app_db import AppDatabase, dumps
from ..auth.storage import get_user_by_id
from .models import HealthProfileRequest, OnboardingRequest

_LIST_COLUMNS = {
    "allergies": "allergies_json",
    "medical_conditions": "medical_conditions_json",
    "medications": "medications_json",
    "dietary_restrictions": "dietary_restrictions_json",
    "health_goals": "health_goals_json",
}


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _update_user(db: AppDatabase, user_id: str, values: Dict[str, Any]) -> Dict[str, Any]:
    values = {**values, "updated_at": _utc_now()}
    assignments = ", ".join(f"{column} = ?" for column in values)
    with db.conn() as conn:
        cur = conn.execute(
            f"UPDATE users SET {assignments} WHERE id = ?",
            (*values.values(), user_id),
        )
        if cur.rowcount == 0:
            raise HTTPException(status_code=404, detail="User not found")
    return get_user_by_id(db, user_id) or {}


def update_identity(db: AppDatabase, *, user_id: str, name: str | None, image: str | None) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    if name is not None:
        values["name"] = name
    if image is not None:
        values["image"] = image or None
    if not values:
        return get_user_by_id(db, user_id) or {}
    return _update_user(db, user_id, values)


def update_onboarding(db: AppDatabase, *, user_id: str, data: OnboardingRequest) -> Dict[str, Any]:
    return _update_user(db, user_id, data.model_dump())


def update_health_profile(db: AppDatabase, *, user_id: str, data: HealthProfileRequest) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for field, value in data.model_dump().items():
        if field in _LIST_COLUMNS:
            values[_LIST_COLUMNS[field]] = dumps(value)
        elif value is not None:
            values[field] = value
    values["health_profile_completed"] = 1
    values["last_profile_update"] = _utc_now()
    return _update_user(db, user_id, values)


def delete_account(db: AppDatabase, *, user_id: str) -> Dict[str, int]:
    """Remove the user and everything they own in one transaction."""
    counts: Dict[str, int] = {}
    with db.transaction() as conn:
        counts["meal_plans"] = conn.execute("DELETE FROM meal_plans WHERE user_id = ?", (user_id,)).rowcount
        counts["chat_messages"] = conn.execute(
            "DELETE FROM chat_messages WHERE thread_id IN (SELECT id FROM chat_threads WHERE user_id = ?)",
            (user_id,),
        ).rowcount
        counts["chat_threads"] = conn.execute("DELETE FROM chat_threads WHERE user_id = ?", (user_id,)).rowcount
        counts["auth_sessions"] = conn.execute("DELETE FROM auth_sessions WHERE user_id = ?", (user_id,)).rowcount
        counts["users"] = conn.execute("DELETE FROM users WHERE id = ?", (user_id,)).rowcount
    return counts
