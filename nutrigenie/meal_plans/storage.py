# -*- coding: utf-8 -*-
"""Meal plan storage helpers (SQLite)."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from fastapi import HTTPException

from ..app_db import AppDatabase, dumps, loads
from .models import MealPlanCreateRequest


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _row_to_plan(row: Any) -> Dict[str, Any]:
    r = dict(row)
    return {
        "id": r["id"],
        "title": r["title"],
        "description": r.get("description"),
        "meals": loads(r.get("meals_json"), default={}),
        "total_nutrients": loads(r.get("total_nutrients_json"), default={}),
        "created_at": r["created_at"],
        "updated_at": r["updated_at"],
    }


def create_meal_plan(
    db: AppDatabase,
    *,
    user_id: str,
    plan: MealPlanCreateRequest,
) -> Dict[str, Any]:
    plan_id = str(uuid4())
    now = _utc_now()
    meals = plan.meals.model_dump(exclude_none=True)
    totals = plan.total_nutrients.model_dump()
    with db.conn() as conn:
        conn.execute(
            """
            INSERT INTO meal_plans (
                id, user_id, title, description, meals_json, total_nutrients_json,
                created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (plan_id, user_id, plan.title, plan.description, dumps(meals), dumps(totals), now, now),
        )
    return {
        "id": plan_id,
        "title": plan.title,
        "description": plan.description,
        "meals": meals,
        "total_nutrients": totals,
        "created_at": now,
        "updated_at": now,
    }


def list_meal_plans(db: AppDatabase, *, user_id: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    sql = "SELECT * FROM meal_plans WHERE user_id = ? ORDER BY created_at DESC, rowid DESC"
    params: list[Any] = [user_id]
    if limit:
        sql += " LIMIT ?"
        params.append(int(limit))
    with db.conn() as conn:
        rows = conn.execute(sql, tuple(params)).fetchall()
    return [_row_to_plan(r) for r in rows]


def count_meal_plans(db: AppDatabase, *, user_id: str) -> int:
    with db.conn() as conn:
        row = conn.execute("SELECT COUNT(1) AS n FROM meal_plans WHERE user_id = ?", (user_id,)).fetchone()
    return int(row["n"]) if row else 0


def get_meal_plan(db: AppDatabase, *, user_id: str, plan_id: str) -> Optional[Dict[str, Any]]:
    with db.conn() as conn:
        row = conn.execute(
            "SELECT * FROM meal_plans WHERE id = ? AND user_id = ?",
            (plan_id, user_id),
        ).fetchone()
    return _row_to_plan(row) if row else None


def require_meal_plan(db: AppDatabase, *, user_id: str, plan_id: str) -> Dict[str, Any]:
    plan = get_meal_plan(db, user_id=user_id, plan_id=plan_id)
    if not plan:
        raise HTTPException(status_code=404, detail="Meal plan not found")
    return plan


def delete_meal_plan(db: AppDatabase, *, user_id: str, plan_id: str) -> None:
    # Scoped to the owner: another user's id looks exactly like a missing one.
    with db.conn() as conn:
        cur = conn.execute("DELETE FROM meal_plans WHERE id = ? AND user_id = ?", (plan_id, user_id))
        if cur.rowcount == 0:
            raise HTTPException(status_code=404, detail="Meal plan not found")
