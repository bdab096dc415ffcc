# FILE: craftads/schemas/auth.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, validator

from craftads.schemas.envelope import CamelModel


class UserCreate(BaseModel):
    email: str
    password: str
    name: Optional[str] = None

    @validator("email")
    def validate_email(cls, v: str):
        v = (v or "").strip()
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError("A valid email address is required")
        return v

    @validator("password")
    def validate_password(cls, v: str):
        if len(v or "") < 6:
            raise ValueError("Password must be at least 6 characters")
        return v


class UserLogin(BaseModel):
    email: str
    password: str


class UserResponse(CamelModel):
    id: str
    email: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    credits: int
    created_at: datetime
    last_login: Optional[datetime] = None


class TokenResponse(CamelModel):
    token: str
    user: UserResponse
