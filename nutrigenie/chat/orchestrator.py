# -*- coding: utf-8 -*-
"""One chat turn: health context → model (optionally one forced tool) → thread.

Nothing is kept between calls. Re-sending the same history against the same
thread appends new turns; there is no deduplication.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import uuid4

from fastapi import HTTPException

from ..app_db import AppDatabase
from .context import load_health_context, render_system_prompt
from .intent import infer_intent, tool_for_intent
from .llm import ChatModelClient, LLMError, ModelReply, ToolCall
from .models import IncomingMessage
from .storage import record_turn
from .tools import TOOLS, ToolContext, run_tool

logger = logging.getLogger(__name__)

TOOL_FALLBACK_TEXT = "Here is what I prepared for you:"


@dataclass
class ChatTurnResult:
    id: str
    text: str
    thread_id: str
    tool_call: Optional[Dict[str, Any]]


def normalize_messages(raw: Sequence[IncomingMessage]) -> List[Dict[str, str]]:
    out: List[Dict[str, str]] = []
    for message in raw:
        text = message.text()
        if text:
            out.append({"role": message.role, "content": text})
    return out


class ChatOrchestrator:
    def __init__(self, db: AppDatabase, llm: ChatModelClient) -> None:
        self.db = db
        self.llm = llm

    def run_turn(
        self,
        *,
        user_id: str,
        messages: Sequence[IncomingMessage],
        thread_id: Optional[str] = None,
    ) -> ChatTurnResult:
        history = normalize_messages(messages)
        user_messages = [m for m in history if m["role"] == "user"]
        if not user_messages:
            raise HTTPException(status_code=400, detail="No user message provided")
        last_user = user_messages[-1]["content"]

        system = render_system_prompt(load_health_context(self.db, user_id))
        tool_name = tool_for_intent(infer_intent(last_user))

        if tool_name:
            reply = self.llm.complete(
                system=system,
                messages=history,
                tools=[TOOLS[tool_name].schema],
                tool_choice=tool_name,
            )
        else:
            reply = self.llm.complete(system=system, messages=history)

        text = reply.text
        tool_call: Optional[Dict[str, Any]] = None
        executed = self._run_allowed_tool(reply, user_id=user_id, allowed=tool_name)
        if executed is not None:
            call, tool_call = executed
            text = self._follow_up_text(system, history, reply, call, tool_call) or TOOL_FALLBACK_TEXT
        if not text:
            raise LLMError("Model returned an empty response")

        stored_tool_call = None
        if tool_call:
            stored_tool_call = {"toolName": tool_call["toolName"], "args": tool_call["input"], "result": tool_call["output"]}
        resolved = record_turn(
            self.db,
            user_id=user_id,
            thread_id=thread_id,
            title_source=last_user,
            retitle_source=user_messages[0]["content"],
            turns=[
                {"role": "user", "content": last_user},
                {"role": "assistant", "content": text, "tool_call": stored_tool_call},
            ],
        )
        return ChatTurnResult(id=f"msg-{uuid4().hex}", text=text, thread_id=resolved, tool_call=tool_call)

    def _run_allowed_tool(
        self,
        reply: ModelReply,
        *,
        user_id: str,
        allowed: Optional[str],
    ) -> Optional[Tuple[ToolCall, Dict[str, Any]]]:
        # Only the tool this turn was gated to may run, and only once.
        for call in reply.tool_calls:
            if call.name != allowed:
                logger.warning("Ignoring tool call %s (allowed: %s)", call.name, allowed)
                continue
            tool_input, tool_output = run_tool(ToolContext(db=self.db, user_id=user_id), call.name, call.arguments)
            return call, {"toolName": call.name, "input": tool_input, "output": tool_output}
        return None

    def _follow_up_text(
        self,
        system: str,
        history: List[Dict[str, str]],
        reply: ModelReply,
        call: ToolCall,
        tool_call: Dict[str, Any],
    ) -> str:
        call_id = call.id or f"call_{uuid4().hex[:12]}"
        followup: List[Dict[str, Any]] = [
            *history,
            {
                "role": "assistant",
                "content": reply.text or None,
                "tool_calls": [
                    {
                        "id": call_id,
                        "type": "function",
                        "function": {"name": call.name, "arguments": json.dumps(tool_call["input"])},
                    }
                ],
            },
            {"role": "tool", "tool_call_id": call_id, "content": json.dumps(tool_call["output"])},
        ]
        answer = self.llm.complete(
            system=system,
            messages=followup,
            tools=[TOOLS[call.name].schema],
            tool_choice="none",
        )
        return answer.text or reply.text
