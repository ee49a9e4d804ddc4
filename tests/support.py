# -*- coding: utf-8 -*-
"""Shared fixtures: a scripted chat model and an app bound to a temp data root."""

from __future__ import annotations

import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from nutrigenie.chat.intent import MEAL_PLAN_TOOL, RECIPE_TOOL
from nutrigenie.chat.llm import ModelReply, ToolCall

PASSWORD = "Passw0rd!"

MEAL_PLAN_ARGS: Dict[str, Any] = {
    "title": "High Protein Vegetarian Day",
    "description": "Around 1900 kcal with paneer, lentils and greek yogurt.",
    "meals": {
        "breakfast": {"name": "Paneer bhurji with toast", "calories": 450, "protein": 28, "carbs": 35, "fat": 20},
        "lunch": {"name": "Dal tadka with brown rice", "calories": 600, "protein": 26, "carbs": 85, "fat": 14},
        "dinner": {"name": "Tofu stir fry", "calories": 550, "protein": 32, "carbs": 40, "fat": 24},
        "snacks": [{"name": "Greek yogurt with berries", "calories": 300, "protein": 20, "carbs": 30, "fat": 8}],
    },
    "totalNutrients": {"calories": 1900, "protein": 106, "carbs": 190, "fat": 66},
}

RECIPE_ARGS: Dict[str, Any] = {
    "name": "Paneer bhurji",
    "description": "Scrambled cottage cheese with onion, tomato and spices.",
    "prepTime": "20 minutes",
    "difficulty": "Easy",
    "calories": 380,
    "protein": 24,
    "carbs": 10,
    "fat": 26,
    "ingredients": ["200 g paneer", "1 onion", "1 tomato", "1 tsp cumin"],
    "instructions": ["Saute onion and cumin", "Add tomato and cook down", "Crumble in paneer and season"],
}


class FakeChatModel:
    """Stands in for `ChatModelClient`; answers from fixed scripts and records calls."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.calls: List[Dict[str, Any]] = []
        self.reply_text = "Drink water regularly and keep meals balanced."
        self.follow_up_text = "Your plan is ready. Enjoy!"
        self.tool_args: Dict[str, Any] = {
            MEAL_PLAN_TOOL: copy.deepcopy(MEAL_PLAN_ARGS),
            RECIPE_TOOL: copy.deepcopy(RECIPE_ARGS),
        }
        self.skip_tools = False
        self.closed = False

    def complete(
        self,
        *,
        system: str,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        tool_choice: Optional[str] = None,
    ) -> ModelReply:
        self.calls.append(
            {"system": system, "messages": list(messages), "tools": tools, "tool_choice": tool_choice}
        )
        if tool_choice == "none":
            return ModelReply(text=self.follow_up_text)
        if tools and tool_choice and not self.skip_tools:
            args = self.tool_args[tool_choice]
            raw = args if isinstance(args, str) else json.dumps(args)
            return ModelReply(text="", tool_calls=[ToolCall(id="call_1", name=tool_choice, arguments=raw)])
        return ModelReply(text=self.reply_text)

    def close(self) -> None:
        self.closed = True


def build_app(tmp: Path, llm: Optional[FakeChatModel] = None):
    """Point the settings at `tmp` and build a fresh app around `llm`."""
    data_root = tmp / "data"
    os.environ["NUTRIGENIE_DATA_ROOT"] = str(data_root)
    os.environ["NUTRIGENIE_DB_PATH"] = str(data_root / "nutrigenie.db")
    os.environ["NUTRIGENIE_JWT_SECRET"] = "test-secret"
    os.environ.pop("OPENROUTER_API_KEY", None)

    from nutrigenie.config import Settings  # noqa: WPS433 (import after env setup)
    from nutrigenie.main import create_app  # noqa: WPS433

    return create_app(Settings(), llm_client=llm or FakeChatModel())


def register(client, email: str, password: str = PASSWORD):
    return client.post(
        "/api/auth/register",
        json={"email": email, "password": password, "confirmPassword": password},
    )
