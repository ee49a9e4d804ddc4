# -*- coding: utf-8 -*-
"""Meal plans: Pydantic models."""

from __future__ import annotations

from typing import List, Optional

from pydantic import Field, field_validator

from ..common import CamelModel


class Nutrients(CamelModel):
    calories: float = Field(..., ge=0)
    protein: float = Field(..., ge=0)
    carbs: float = Field(..., ge=0)
    fat: float = Field(..., ge=0)


class Meal(Nutrients):
    name: str = Field(..., min_length=1, max_length=200)
    ingredients: Optional[List[str]] = None
    instructions: Optional[List[str]] = None


class MealStructure(CamelModel):
    breakfast: Meal
    lunch: Meal
    dinner: Meal
    snacks: List[Meal] = Field(default_factory=list)


class MealPlanCreateRequest(CamelModel):
    title: str = Field(..., max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    meals: MealStructure
    total_nutrients: Nutrients

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        value = " ".join(value.split())
        if not value:
            raise ValueError("Title is required")
        return value


class MealPlanOut(CamelModel):
    id: str
    title: str
    description: Optional[str] = None
    meals: MealStructure
    total_nutrients: Nutrients
    created_at: str
    updated_at: str


class MealPlanListResponse(CamelModel):
    meal_plans: List[MealPlanOut]


class MealPlanDetailResponse(CamelModel):
    meal_plan: MealPlanOut


class MealPlanCreateResponse(CamelModel):
    success: bool = True
    id: str
    meal_plan: MealPlanOut
