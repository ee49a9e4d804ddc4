# -*- coding: utf-8 -*-
"""Meal plan endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ..app_db import AppDatabase, get_db
from ..auth.security import get_current_user
from .models import (
    MealPlanCreateRequest,
    MealPlanCreateResponse,
    MealPlanDetailResponse,
    MealPlanListResponse,
    MealPlanOut,
)
from .storage import create_meal_plan, delete_meal_plan, list_meal_plans, require_meal_plan

router = APIRouter(prefix="/api/meal-plans", tags=["Meal plans"])


@router.get("", response_model=MealPlanListResponse, summary="List my meal plans (newest first)")
def list_meal_plans_api(user: dict = Depends(get_current_user), db: AppDatabase = Depends(get_db)):
    rows = list_meal_plans(db, user_id=user["id"])
    return MealPlanListResponse(meal_plans=[MealPlanOut(**r) for r in rows])


@router.post("", response_model=MealPlanCreateResponse, status_code=201, summary="Save a meal plan")
def create_meal_plan_api(
    request: MealPlanCreateRequest,
    user: dict = Depends(get_current_user),
    db: AppDatabase = Depends(get_db),
):
    row = create_meal_plan(db, user_id=user["id"], plan=request)
    return MealPlanCreateResponse(id=row["id"], meal_plan=MealPlanOut(**row))


@router.get("/{plan_id}", response_model=MealPlanDetailResponse, summary="Get one meal plan")
def get_meal_plan_api(plan_id: str, user: dict = Depends(get_current_user), db: AppDatabase = Depends(get_db)):
    return MealPlanDetailResponse(meal_plan=MealPlanOut(**require_meal_plan(db, user_id=user["id"], plan_id=plan_id)))


@router.delete("/{plan_id}", summary="Delete a meal plan")
def delete_meal_plan_api(plan_id: str, user: dict = Depends(get_current_user), db: AppDatabase = Depends(get_db)):
    delete_meal_plan(db, user_id=user["id"], plan_id=plan_id)
    return {"success": True, "id": plan_id}
