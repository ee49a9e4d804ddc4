# -*- coding: utf-8 -*-
"""Chat: API endpoints (turns, thread history, rename, delete)."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request

from ..app_db import AppDatabase, get_db
from ..auth.security import get_current_user
from .models import (
    ChatRequest,
    ChatResponse,
    RenameThreadRequest,
    RenameThreadResponse,
    StoredMessage,
    ThreadHistoryResponse,
    ThreadListResponse,
    ThreadSummary,
)
from .orchestrator import ChatOrchestrator
from .storage import (
    DEFAULT_TITLE,
    delete_thread,
    latest_thread,
    list_messages,
    list_threads,
    rename_thread,
    require_thread,
)

router = APIRouter(prefix="/api/chat", tags=["Chat"])


def get_orchestrator(request: Request) -> ChatOrchestrator:
    return ChatOrchestrator(request.app.state.db, request.app.state.llm)


def _history(db: AppDatabase, thread: Optional[Dict[str, Any]]) -> ThreadHistoryResponse:
    if not thread:
        return ThreadHistoryResponse(thread_id=None, title=DEFAULT_TITLE, messages=[])
    messages = [StoredMessage(**m) for m in list_messages(db, thread_id=thread["id"])]
    return ThreadHistoryResponse(thread_id=thread["id"], title=thread["title"] or DEFAULT_TITLE, messages=messages)


@router.post("", response_model=ChatResponse, summary="Send one chat turn")
def post_chat_turn(
    request: ChatRequest,
    user: dict = Depends(get_current_user),
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
):
    result = orchestrator.run_turn(user_id=user["id"], messages=request.messages, thread_id=request.thread_id)
    return ChatResponse(
        id=result.id,
        text=result.text,
        thread_id=result.thread_id,
        tool_call=result.tool_call,
    )


@router.get("", summary="List threads (threads=1), load one thread (threadId), or load the latest")
def get_chat(
    threads: Optional[str] = Query(default=None),
    thread_id: Optional[str] = Query(default=None, alias="threadId"),
    user: dict = Depends(get_current_user),
    db: AppDatabase = Depends(get_db),
):
    if threads == "1":
        rows = list_threads(db, user_id=user["id"])
        items = [
            ThreadSummary(
                id=r["id"],
                title=r["title"] or DEFAULT_TITLE,
                last_message_at=r["last_message_at"],
                created_at=r["created_at"],
            )
            for r in rows
        ]
        return ThreadListResponse(threads=items).model_dump(by_alias=True)

    if thread_id:
        thread = require_thread(db, user_id=user["id"], thread_id=thread_id)
        return _history(db, thread).model_dump(by_alias=True)

    return _history(db, latest_thread(db, user_id=user["id"])).model_dump(by_alias=True)


@router.patch("", response_model=RenameThreadResponse, summary="Rename a thread")
def patch_chat_title(
    request: RenameThreadRequest,
    user: dict = Depends(get_current_user),
    db: AppDatabase = Depends(get_db),
):
    row = rename_thread(db, user_id=user["id"], thread_id=request.thread_id, title=request.title)
    return RenameThreadResponse(**row)


@router.delete("/{thread_id}", summary="Delete a thread and its turns")
def delete_chat_thread(thread_id: str, user: dict = Depends(get_current_user), db: AppDatabase = Depends(get_db)):
    delete_thread(db, user_id=user["id"], thread_id=thread_id)
    return {"success": True, "id": thread_id}
