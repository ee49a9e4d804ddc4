# -*- coding: utf-8 -*-
"""Chat context assembly.

Builds the system instruction sent to the model from:
- the coach persona and safety rules
- the caller's health context (a sanitized subset of the stored profile)

Only the fields that change what advice is safe are forwarded. The
credential hash and identity fields never leave the database layer.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from ..app_db import AppDatabase
from ..auth.storage import get_user_by_id

COACH_SYSTEM_PROMPT = """You are Dr. Genie, the intelligent triage coordinator for NutriGenie and a premium AI health and nutrition coach.
Be warm, supportive, and professional. You are NOT a medical doctor. Do not provide a diagnosis.

You can help with any health-related question in an educational and practical way.
For diabetes ("sugar"), blood pressure, lifestyle, sleep, exercise, and diet questions:
- Provide concise daily routines and food guidance.
- Include caution notes where appropriate.
- Do not diagnose or prescribe medication changes.
Respect every allergy, medical condition, medication and dietary restriction in the user profile.
Never expose internal tool names, function names, or JSON arguments in user-facing responses.
If you use tools, do it silently and present clean, natural language results.
When a user explicitly asks for a meal plan, call the generateMealPlan tool.
When a user explicitly asks for recipe/cooking instructions, call the getRecipeDetails tool.
For other health questions, respond conversationally with safe guidance."""

_LIST_FIELDS = {
    "allergies": "allergies",
    "medical_conditions": "medicalConditions",
    "medications": "medications",
    "dietary_restrictions": "dietaryRestrictions",
    "health_goals": "healthGoals",
}


def build_health_context(user: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not user:
        return None
    context: Dict[str, Any] = {}
    for field, key in _LIST_FIELDS.items():
        values = [v for v in (user.get(field) or []) if isinstance(v, str) and v.strip()]
        if values:
            context[key] = values
    if user.get("activity_level"):
        context["activityLevel"] = user["activity_level"]
    return context or None


def load_health_context(db: AppDatabase, user_id: str) -> Optional[Dict[str, Any]]:
    return build_health_context(get_user_by_id(db, user_id))


def render_system_prompt(health_context: Optional[Dict[str, Any]]) -> str:
    if not health_context:
        return COACH_SYSTEM_PROMPT
    profile = json.dumps(health_context, ensure_ascii=False, separators=(",", ":"))
    return f"{COACH_SYSTEM_PROMPT}\n\nUser Profile: {profile}"
