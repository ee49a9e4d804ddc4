# -*- coding: utf-8 -*-
"""Keyword gate deciding which tool (if any) a chat turn must call."""

from __future__ import annotations

import re
from enum import Enum
from typing import Optional


class Intent(str, Enum):
    meal_plan = "meal_plan"
    recipe = "recipe"
    none = "none"


MEAL_PLAN_TOOL = "generateMealPlan"
RECIPE_TOOL = "getRecipeDetails"

_MEAL_PLAN_RE = re.compile(r"(meal\s*plan|diet\s*plan|plan\s+my\s+meals|daily\s+meal)", re.IGNORECASE)
_RECIPE_RE = re.compile(r"(recipe|cook|cooking|ingredients|instructions|how\s+to\s+make)", re.IGNORECASE)


def infer_intent(text: str) -> Intent:
    # Checked in order: a message matching both patterns is a meal-plan request.
    if _MEAL_PLAN_RE.search(text or ""):
        return Intent.meal_plan
    if _RECIPE_RE.search(text or ""):
        return Intent.recipe
    return Intent.none


def tool_for_intent(intent: Intent) -> Optional[str]:
    if intent is Intent.meal_plan:
        return MEAL_PLAN_TOOL
    if intent is Intent.recipe:
        return RECIPE_TOOL
    return None
