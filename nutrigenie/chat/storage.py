# -*- coding: utf-8 -*-
"""Chat: DB storage helpers (threads + turns)."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4

from fastapi import HTTPException

from ..app_db import AppDatabase, dumps, loads

DEFAULT_TITLE = "New Chat"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _compact(text: str, limit: int) -> str:
    compact = " ".join((text or "").split())
    if not compact:
        return ""
    return f"{compact[:limit]}..." if len(compact) > limit else compact


def create_thread_title(text: str) -> str:
    return _compact(text, 60) or DEFAULT_TITLE


def normalize_title(text: str) -> str:
    """Rename input: collapsed and capped; blank stays blank so callers can reject it."""
    return _compact(text, 80)


def _row_to_message(row: Any) -> Dict[str, Any]:
    r = dict(row)
    return {
        "id": r["id"],
        "role": r["role"],
        "content": r["content"],
        "tool_call": loads(r.get("tool_call_json")),
        "created_at": r["created_at"],
    }


def list_threads(db: AppDatabase, *, user_id: str) -> List[Dict[str, Any]]:
    with db.conn() as conn:
        rows = conn.execute(
            "SELECT * FROM chat_threads WHERE user_id = ? ORDER BY last_message_at DESC, rowid DESC",
            (user_id,),
        ).fetchall()
        return [dict(r) for r in rows]


def count_threads(db: AppDatabase, *, user_id: str) -> int:
    with db.conn() as conn:
        row = conn.execute("SELECT COUNT(1) AS n FROM chat_threads WHERE user_id = ?", (user_id,)).fetchone()
    return int(row["n"]) if row else 0


def get_thread(db: AppDatabase, *, user_id: str, thread_id: str) -> Optional[Dict[str, Any]]:
    with db.conn() as conn:
        row = conn.execute(
            "SELECT * FROM chat_threads WHERE id = ? AND user_id = ?",
            (thread_id, user_id),
        ).fetchone()
        return dict(row) if row else None


def require_thread(db: AppDatabase, *, user_id: str, thread_id: str) -> Dict[str, Any]:
    row = get_thread(db, user_id=user_id, thread_id=thread_id)
    if not row:
        raise HTTPException(status_code=404, detail="Thread not found")
    return row


def latest_thread(db: AppDatabase, *, user_id: str) -> Optional[Dict[str, Any]]:
    with db.conn() as conn:
        row = conn.execute(
            "SELECT * FROM chat_threads WHERE user_id = ? ORDER BY last_message_at DESC, rowid DESC LIMIT 1",
            (user_id,),
        ).fetchone()
        return dict(row) if row else None


def list_messages(db: AppDatabase, *, thread_id: str) -> List[Dict[str, Any]]:
    with db.conn() as conn:
        rows = conn.execute(
            "SELECT * FROM chat_messages WHERE thread_id = ? ORDER BY seq ASC",
            (thread_id,),
        ).fetchall()
        return [_row_to_message(r) for r in rows]


def rename_thread(db: AppDatabase, *, user_id: str, thread_id: str, title: str) -> Dict[str, Any]:
    clean = normalize_title(title)
    if not clean:
        raise HTTPException(status_code=400, detail="threadId and title are required")
    with db.conn() as conn:
        cur = conn.execute(
            "UPDATE chat_threads SET title = ?, updated_at = ? WHERE id = ? AND user_id = ?",
            (clean, _utc_now(), thread_id, user_id),
        )
        if cur.rowcount == 0:
            raise HTTPException(status_code=404, detail="Thread not found")
    return {"id": thread_id, "title": clean}


def delete_thread(db: AppDatabase, *, user_id: str, thread_id: str) -> None:
    with db.conn() as conn:
        cur = conn.execute("DELETE FROM chat_threads WHERE id = ? AND user_id = ?", (thread_id, user_id))
        if cur.rowcount == 0:
            raise HTTPException(status_code=404, detail="Thread not found")


def _resolve_thread(
    conn: sqlite3.Connection,
    *,
    user_id: str,
    thread_id: Optional[str],
    title_source: str,
    retitle_source: str,
    now: str,
) -> str:
    if thread_id:
        row = conn.execute(
            "SELECT id, title FROM chat_threads WHERE id = ? AND user_id = ?",
            (thread_id, user_id),
        ).fetchone()
        if row:
            if not row["title"] or row["title"] == DEFAULT_TITLE:
                conn.execute(
                    "UPDATE chat_threads SET title = ? WHERE id = ?",
                    (create_thread_title(retitle_source), row["id"]),
                )
            return row["id"]

    new_id = str(uuid4())
    conn.execute(
        """
        INSERT INTO chat_threads (id, user_id, title, last_message_at, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (new_id, user_id, create_thread_title(title_source), now, now, now),
    )
    return new_id


def record_turn(
    db: AppDatabase,
    *,
    user_id: str,
    thread_id: Optional[str],
    title_source: str,
    retitle_source: Optional[str] = None,
    turns: Sequence[Dict[str, Any]],
) -> str:
    """Resolve (or create) the caller's thread and append `turns` to it.

    Ownership check, creation, appends and the `last_message_at` bump share a
    single write transaction, so a turn is either fully recorded or not at all.
    An id that is missing or owned by someone else yields a fresh thread.
    """
    now = _utc_now()
    with db.transaction() as conn:
        resolved = _resolve_thread(
            conn,
            user_id=user_id,
            thread_id=thread_id,
            title_source=title_source,
            retitle_source=retitle_source or title_source,
            now=now,
        )
        row = conn.execute(
            "SELECT COALESCE(MAX(seq), 0) AS last_seq FROM chat_messages WHERE thread_id = ?",
            (resolved,),
        ).fetchone()
        seq = int(row["last_seq"])
        for turn in turns:
            seq += 1
            tool_call = turn.get("tool_call")
            conn.execute(
                """
                INSERT INTO chat_messages (id, thread_id, seq, role, content, tool_call_json, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(uuid4()),
                    resolved,
                    seq,
                    turn["role"],
                    turn["content"],
                    dumps(tool_call) if tool_call else None,
                    now,
                ),
            )
        conn.execute(
            "UPDATE chat_threads SET last_message_at = ?, updated_at = ? WHERE id = ?",
            (now, now, resolved),
        )
    return resolved
