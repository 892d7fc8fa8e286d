from __future__ import annotations
from pydantic import BaseModel, EmailStr, Field
from uuid import UUID
from datetime import datetime

class RegisterRequest(BaseModel):
    email: EmailStr
    username: str = Field(min_length=3, max_length=32, pattern=r"^[A-Za-z0-9_]+$")
    full_name: str | None = Field(default=None, max_length=120)
    password: str = Field(min_length=8, max_length=128)

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class UserPublic(BaseModel):
    id: UUID
    email: EmailStr
    username: str
    full_name: str | None = None
    role: str
    created_at: datetime

class TokenPair(BaseModel):
    access: str
    refresh: str

class UserAdminUpdate(BaseModel):
    is_disqualified: bool | None = None
    admin_notes: str | None = None
