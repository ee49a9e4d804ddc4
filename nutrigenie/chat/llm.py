# -*- coding: utf-8 -*-
"""OpenAI-compatible chat completions client (OpenRouter by default)."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from ..config import Settings

logger = logging.getLogger(__name__)


class LLMError(RuntimeError):
    """The model endpoint failed or returned something unusable."""


@dataclass
class ToolCall:
    id: str
    name: str
    arguments: Any


@dataclass
class ModelReply:
    text: str
    tool_calls: List[ToolCall] = field(default_factory=list)
    model: Optional[str] = None


def _parse_reply(payload: Dict[str, Any]) -> ModelReply:
    choices = payload.get("choices") or []
    if not choices:
        err = payload.get("error")
        if isinstance(err, dict) and err.get("message"):
            raise LLMError(f"Model error: {err['message']}")
        raise LLMError("Model returned no choices")
    message = choices[0].get("message") or {}
    content = message.get("content")
    calls = []
    for raw in message.get("tool_calls") or []:
        fn = raw.get("function") or {}
        if not fn.get("name"):
            continue
        calls.append(ToolCall(id=str(raw.get("id") or ""), name=fn["name"], arguments=fn.get("arguments")))
    return ModelReply(
        text=content.strip() if isinstance(content, str) else "",
        tool_calls=calls,
        model=payload.get("model"),
    )


class ChatModelClient:
    """Thin wrapper over `POST {base_url}/chat/completions`.

    Owned by the application: built once in `create_app`, closed at shutdown.
    """

    def __init__(self, settings: Settings, *, transport: Optional[httpx.BaseTransport] = None) -> None:
        self._settings = settings
        base_url = settings.llm_base_url.rstrip("/")
        self._url = base_url if base_url.endswith("/chat/completions") else f"{base_url}/chat/completions"
        self._client = httpx.Client(timeout=settings.llm_timeout, follow_redirects=True, transport=transport)

    def complete(
        self,
        *,
        system: str,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        tool_choice: Optional[str] = None,
    ) -> ModelReply:
        """Single completion. `tool_choice` is "none", "auto", "required" or a tool name to force."""
        if not self._settings.llm_api_key:
            raise LLMError("OPENROUTER_API_KEY not set")

        payload: Dict[str, Any] = {
            "model": self._settings.llm_model,
            "messages": [{"role": "system", "content": system}, *messages],
            "temperature": self._settings.llm_temperature,
            "max_tokens": self._settings.llm_max_tokens,
        }
        if tools:
            payload["tools"] = tools
            if tool_choice in {"none", "auto", "required"}:
                payload["tool_choice"] = tool_choice
            elif tool_choice:
                payload["tool_choice"] = {"type": "function", "function": {"name": tool_choice}}

        try:
            resp = self._client.post(
                self._url,
                json=payload,
                headers={"Authorization": f"Bearer {self._settings.llm_api_key}"},
            )
        except httpx.HTTPError as exc:
            raise LLMError(f"Model API unreachable: {exc}") from exc

        if resp.status_code >= 400:
            logger.error("Model API error %s: %s", resp.status_code, resp.text[:500])
            raise LLMError(f"Model API error: {resp.status_code}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise LLMError("Model API returned invalid JSON") from exc
        return _parse_reply(data)

    def close(self) -> None:
        self._client.close()
