# -*- coding: utf-8 -*-
"""Chat: Pydantic models."""

from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field

from ..common import CamelModel


ChatRole = Literal["user", "assistant", "system"]


class MessagePart(BaseModel):
    type: str
    text: Optional[str] = None


class IncomingMessage(BaseModel):
    role: ChatRole
    content: Optional[str] = None
    parts: Optional[List[MessagePart]] = None

    def text(self) -> Optional[str]:
        if isinstance(self.content, str) and self.content:
            return self.content
        for part in self.parts or []:
            if part.type == "text" and part.text:
                return part.text
        return None


class ChatRequest(CamelModel):
    thread_id: Optional[str] = None
    messages: List[IncomingMessage] = Field(default_factory=list)


class ToolCallPayload(CamelModel):
    tool_name: str
    input: Any
    output: Any


class ChatResponse(CamelModel):
    id: str
    role: Literal["assistant"] = "assistant"
    text: str
    thread_id: str
    tool_call: Optional[ToolCallPayload] = None


class StoredToolCall(CamelModel):
    tool_name: str
    args: Any = None
    result: Any = None


class StoredMessage(CamelModel):
    id: str
    role: ChatRole
    content: str
    tool_call: Optional[StoredToolCall] = None
    created_at: str


class ThreadSummary(CamelModel):
    id: str
    title: str
    last_message_at: str
    created_at: str


class ThreadListResponse(CamelModel):
    threads: List[ThreadSummary]


class ThreadHistoryResponse(CamelModel):
    thread_id: Optional[str] = None
    title: str
    messages: List[StoredMessage]


class RenameThreadRequest(CamelModel):
    thread_id: str = Field(..., min_length=1)
    title: str = Field(..., max_length=1000)


class RenameThreadResponse(CamelModel):
    id: str
    title: str
