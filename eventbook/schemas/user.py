"""
Pydantic schemas for user-related request/response validation.
"""

from datetime import datetime
from pydantic import BaseModel, EmailStr, Field

from eventbook.models.user import UserRole
from eventbook.schemas.base import CamelModel


class UserCreate(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=8, max_length=72)
    role: UserRole = UserRole.USER


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserResponse(CamelModel):
    id: int
    email: str
    name: str
    role: str
    is_active: bool
    created_at: datetime


class Token(BaseModel):
    success: bool = True
    access_token: str
    token_type: str = "bearer"
    role: str
