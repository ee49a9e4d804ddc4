# -*- coding: utf-8 -*-
"""Auth: Pydantic models."""

from __future__ import annotations

import re
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from ..common import CamelModel

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _check_email(value: str) -> str:
    value = value.strip()
    if not _EMAIL_RE.match(value):
        raise ValueError("Please enter a valid email")
    return value


class RegisterRequest(CamelModel):
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=8, max_length=128)
    confirm_password: str = Field(..., max_length=128)

    @field_validator("email")
    @classmethod
    def _email(cls, value: str) -> str:
        return _check_email(value)

    @field_validator("password")
    @classmethod
    def _password_rules(cls, value: str) -> str:
        if not re.search(r"[A-Z]", value):
            raise ValueError("Password must contain at least one uppercase letter")
        if not re.search(r"\d", value):
            raise ValueError("Password must contain at least one number")
        return value

    @model_validator(mode="after")
    def _passwords_match(self) -> "RegisterRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class LoginRequest(CamelModel):
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=1, max_length=128)


class UserPublic(CamelModel):
    """A user record with the credential hash stripped."""

    id: str
    email: str
    name: Optional[str] = None
    image: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    height: Optional[float] = None
    food_preference: Optional[str] = None
    cuisine_preference: Optional[str] = None
    allergies: List[str] = Field(default_factory=list)
    medical_conditions: List[str] = Field(default_factory=list)
    medications: List[str] = Field(default_factory=list)
    dietary_restrictions: List[str] = Field(default_factory=list)
    health_goals: List[str] = Field(default_factory=list)
    activity_level: Optional[str] = None
    target_calories: Optional[float] = None
    target_weight: Optional[float] = None
    health_profile_completed: bool = False
    last_profile_update: Optional[str] = None
    created_at: str
    updated_at: str


class AuthResponse(CamelModel):
    user: UserPublic
    token: str
