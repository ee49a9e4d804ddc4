# -*- coding: utf-8 -*-
"""Profile: Pydantic models (onboarding, health form, account)."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, field_validator

from ..auth.models import UserPublic
from ..common import CamelModel

Gender = Literal["male", "female", "other"]
FoodPreference = Literal["veg", "non-veg", "vegan"]
CuisinePreference = Literal["indian", "western", "mixed"]
ActivityLevel = Literal["sedentary", "light", "moderate", "active", "very_active"]


class ProfileResponse(CamelModel):
    user: UserPublic


class ProfileUpdateRequest(CamelModel):
    name: Optional[str] = Field(default=None, max_length=80)
    image: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = " ".join(value.split())
        if not value:
            raise ValueError("Name must not be blank")
        return value


class OnboardingRequest(CamelModel):
    age: int = Field(..., ge=10, le=100)
    gender: Gender
    height: float = Field(..., ge=50, le=300)
    food_preference: FoodPreference
    cuisine_preference: CuisinePreference


def _clean_list(values: List[str]) -> List[str]:
    return [v.strip() for v in values if isinstance(v, str) and v.strip()]


class HealthProfileRequest(CamelModel):
    age: Optional[int] = Field(default=None, ge=1, le=120)
    gender: Optional[Gender] = None
    height: Optional[float] = Field(default=None, ge=50, le=300)
    food_preference: Optional[FoodPreference] = None
    cuisine_preference: Optional[CuisinePreference] = None

    allergies: List[str] = Field(default_factory=list)
    medical_conditions: List[str] = Field(default_factory=list)
    medications: List[str] = Field(default_factory=list)
    dietary_restrictions: List[str] = Field(default_factory=list)

    health_goals: List[str] = Field(default_factory=list)
    activity_level: Optional[ActivityLevel] = None
    target_calories: Optional[float] = Field(default=None, ge=500, le=10000)
    target_weight: Optional[float] = Field(default=None, ge=20, le=500)

    @field_validator("allergies", "medical_conditions", "medications", "dietary_restrictions", "health_goals")
    @classmethod
    def _strip_entries(cls, values: List[str]) -> List[str]:
        return _clean_list(values)


class AccountDeleteRequest(CamelModel):
    email: str = Field(..., max_length=254)
    confirmation: str = Field(..., max_length=32)


class LatestMealPlan(CamelModel):
    id: str
    title: str
    total_nutrients: Dict[str, Any]
    created_at: str


class DashboardStats(CamelModel):
    meal_plan_count: int
    thread_count: int
    latest_meal_plan: Optional[LatestMealPlan] = None
    health_profile_completed: bool = False
