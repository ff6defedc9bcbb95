from __future__ import annotations
from datetime import datetime
from typing import Literal
from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    email: str
    password: str = Field(min_length=8)
    display_name: str = ""
    role: Literal["user", "agent"] = "user"
    company: str = ""
    license_number: str = ""
    phone_number: str = ""


class LoginRequest(BaseModel):
    email: str
    password: str


class UserRead(BaseModel):
    id: str
    email: str
    display_name: str
    role: str
    is_active: bool
    company: str = ""
    license_number: str = ""
    phone_number: str = ""
    created_at: datetime
    last_login_at: datetime | None = None

    model_config = {"from_attributes": True}


class UserUpdate(BaseModel):
    role: Literal["user", "agent", "admin"] | None = None
    is_active: bool | None = None
