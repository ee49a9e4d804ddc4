# -*- coding: utf-8 -*-
"""Coach tools exposed to the model as OpenAI-style functions.

Each tool has a JSON schema advertised to the model, a Pydantic model that
re-validates whatever arguments come back, and an executor. Executors return
the validated input as their output (camelCase, the shape clients render).
"""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Literal, Optional

from pydantic import Field, ValidationError

from ..app_db import AppDatabase
from ..common import CamelModel
from ..meal_plans.models import MealPlanCreateRequest
from ..meal_plans.storage import create_meal_plan
from .intent import MEAL_PLAN_TOOL, RECIPE_TOOL

logger = logging.getLogger(__name__)


class ToolInputError(ValueError):
    """The model produced arguments that do not match the tool schema."""


class ToolMeal(CamelModel):
    name: str
    calories: float
    protein: float
    carbs: float
    fat: float
    ingredients: Optional[List[str]] = None
    instructions: Optional[List[str]] = None


class ToolMeals(CamelModel):
    breakfast: ToolMeal
    lunch: ToolMeal
    dinner: ToolMeal
    snacks: List[ToolMeal] = Field(default_factory=list)


class ToolNutrients(CamelModel):
    calories: float
    protein: float
    carbs: float
    fat: float


class MealPlanToolInput(CamelModel):
    """Only what the advertised schema promises. Storage rules are checked at save time."""

    title: str
    description: str
    meals: ToolMeals
    total_nutrients: ToolNutrients


class RecipeToolInput(CamelModel):
    name: str = Field(..., min_length=1)
    description: str
    prep_time: str
    difficulty: Literal["Easy", "Medium", "Hard"]
    calories: float = Field(..., ge=0)
    protein: float = Field(..., ge=0)
    carbs: float = Field(..., ge=0)
    fat: float = Field(..., ge=0)
    ingredients: List[str]
    instructions: List[str]


_NUTRIENT_PROPS: Dict[str, Any] = {
    "calories": {"type": "number", "description": "kcal"},
    "protein": {"type": "number", "description": "grams"},
    "carbs": {"type": "number", "description": "grams"},
    "fat": {"type": "number", "description": "grams"},
}
_NUTRIENT_KEYS = ["calories", "protein", "carbs", "fat"]

_MEAL_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {"name": {"type": "string"}, **_NUTRIENT_PROPS},
    "required": ["name", *_NUTRIENT_KEYS],
}

MEAL_PLAN_TOOL_SCHEMA: Dict[str, Any] = {
    "type": "function",
    "function": {
        "name": MEAL_PLAN_TOOL,
        "description": "Generate a complete daily meal plan with breakfast, lunch, dinner and snacks.",
        "parameters": {
            "type": "object",
            "properties": {
                "title": {"type": "string"},
                "description": {"type": "string"},
                "meals": {
                    "type": "object",
                    "properties": {
                        "breakfast": _MEAL_SCHEMA,
                        "lunch": _MEAL_SCHEMA,
                        "dinner": _MEAL_SCHEMA,
                        "snacks": {"type": "array", "items": _MEAL_SCHEMA},
                    },
                    "required": ["breakfast", "lunch", "dinner"],
                },
                "totalNutrients": {
                    "type": "object",
                    "properties": dict(_NUTRIENT_PROPS),
                    "required": list(_NUTRIENT_KEYS),
                },
            },
            "required": ["title", "description", "meals", "totalNutrients"],
        },
    },
}

RECIPE_TOOL_SCHEMA: Dict[str, Any] = {
    "type": "function",
    "function": {
        "name": RECIPE_TOOL,
        "description": "Get detailed cooking instructions and nutritional information for a specific dish.",
        "parameters": {
            "type": "object",
            "properties": {
                "name": {"type": "string"},
                "description": {"type": "string"},
                "prepTime": {"type": "string", "description": "e.g. 20 minutes"},
                "difficulty": {"type": "string", "enum": ["Easy", "Medium", "Hard"]},
                **_NUTRIENT_PROPS,
                "ingredients": {"type": "array", "items": {"type": "string"}},
                "instructions": {"type": "array", "items": {"type": "string"}},
            },
            "required": [
                "name",
                "description",
                "prepTime",
                "difficulty",
                *_NUTRIENT_KEYS,
                "ingredients",
                "instructions",
            ],
        },
    },
}


@dataclass
class ToolContext:
    db: AppDatabase
    user_id: str


@dataclass
class ToolSpec:
    schema: Dict[str, Any]
    input_model: type[CamelModel]
    execute: Callable[[ToolContext, Any], Dict[str, Any]]


def _dump(model: CamelModel) -> Dict[str, Any]:
    return model.model_dump(by_alias=True, exclude_none=True)


def _execute_meal_plan(ctx: ToolContext, params: MealPlanToolInput) -> Dict[str, Any]:
    try:
        plan = MealPlanCreateRequest.model_validate(params.model_dump())
        create_meal_plan(ctx.db, user_id=ctx.user_id, plan=plan)
    except (ValidationError, sqlite3.Error):
        # The plan is still handed back to the caller; only the save is lost.
        logger.exception("Error saving meal plan for user %s", ctx.user_id)
    return _dump(params)


def _execute_recipe(ctx: ToolContext, params: RecipeToolInput) -> Dict[str, Any]:
    return _dump(params)


TOOLS: Dict[str, ToolSpec] = {
    MEAL_PLAN_TOOL: ToolSpec(MEAL_PLAN_TOOL_SCHEMA, MealPlanToolInput, _execute_meal_plan),
    RECIPE_TOOL: ToolSpec(RECIPE_TOOL_SCHEMA, RecipeToolInput, _execute_recipe),
}


def parse_tool_arguments(name: str, arguments: Any) -> CamelModel:
    spec = TOOLS.get(name)
    if spec is None:
        raise ToolInputError(f"Unknown tool: {name}")
    if isinstance(arguments, str):
        try:
            arguments = json.loads(arguments or "{}")
        except ValueError as exc:
            raise ToolInputError(f"{name}: arguments are not valid JSON") from exc
    try:
        return spec.input_model.model_validate(arguments)
    except ValidationError as exc:
        raise ToolInputError(f"{name}: {exc.error_count()} invalid field(s)") from exc


def run_tool(ctx: ToolContext, name: str, arguments: Any) -> tuple[Dict[str, Any], Dict[str, Any]]:
    """Validate and execute one tool call; returns (input, output)."""
    params = parse_tool_arguments(name, arguments)
    output = TOOLS[name].execute(ctx, params)
    return _dump(params), output
