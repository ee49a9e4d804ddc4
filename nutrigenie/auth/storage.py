# -*- coding: utf-8 -*-
"""Auth: DB storage helpers (users + auth sessions)."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from ..app_db import AppDatabase, loads

_LIST_FIELDS = (
    "allergies",
    "medical_conditions",
    "medications",
    "dietary_restrictions",
    "health_goals",
)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def normalize_email(email: str) -> str:
    return email.lower().strip()


def row_to_user(row: Any) -> Dict[str, Any]:
    data = dict(row)
    for field in _LIST_FIELDS:
        data[field] = loads(data.pop(f"{field}_json", None), default=[])
    data["health_profile_completed"] = bool(data.get("health_profile_completed"))
    return data


def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in user.items() if k != "password_hash"}


def get_user_by_email(db: AppDatabase, email: str) -> Optional[Dict[str, Any]]:
    with db.conn() as conn:
        row = conn.execute("SELECT * FROM users WHERE email = ?", (normalize_email(email),)).fetchone()
        return row_to_user(row) if row else None


def get_user_by_id(db: AppDatabase, user_id: str) -> Optional[Dict[str, Any]]:
    with db.conn() as conn:
        row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return row_to_user(row) if row else None


def create_user(db: AppDatabase, *, email: str, password_hash: Optional[str], name: Optional[str] = None) -> Dict[str, Any]:
    user_id = str(uuid4())
    now = _utc_now()
    email_norm = normalize_email(email)
    with db.conn() as conn:
        conn.execute(
            """
            INSERT INTO users (id, email, password_hash, name, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (user_id, email_norm, password_hash, name or email_norm.split("@")[0], now, now),
        )
        row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    return row_to_user(row)


def create_auth_session(db: AppDatabase, *, user_id: str, ttl_days: int) -> Dict[str, Any]:
    session_id = uuid4().hex
    now = datetime.now(timezone.utc)
    expires = now + timedelta(days=int(ttl_days))
    row = {
        "id": session_id,
        "user_id": user_id,
        "created_at": now.isoformat().replace("+00:00", "Z"),
        "expires_at": expires.isoformat().replace("+00:00", "Z"),
        "revoked_at": None,
    }
    with db.conn() as conn:
        conn.execute(
            "INSERT INTO auth_sessions (id, user_id, created_at, expires_at, revoked_at) VALUES (?, ?, ?, ?, NULL)",
            (row["id"], row["user_id"], row["created_at"], row["expires_at"]),
        )
    return row


def get_active_auth_session(db: AppDatabase, session_id: str) -> Optional[Dict[str, Any]]:
    with db.conn() as conn:
        row = conn.execute(
            "SELECT * FROM auth_sessions WHERE id = ? AND revoked_at IS NULL AND expires_at > ?",
            (session_id, _utc_now()),
        ).fetchone()
        return dict(row) if row else None


def revoke_auth_session(db: AppDatabase, session_id: str) -> bool:
    with db.conn() as conn:
        cur = conn.execute(
            "UPDATE auth_sessions SET revoked_at = ? WHERE id = ? AND revoked_at IS NULL",
            (_utc_now(), session_id),
        )
        return cur.rowcount > 0
