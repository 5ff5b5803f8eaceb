# app/core/auth/schemas.py
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class UserRole(str, Enum):
    """System roles"""
    ADMIN = "admin"
    MANAGER = "manager"
    CASHIER = "cashier"
    STAFF = "staff"


# Role groups used by route guards
ADMIN_ONLY = [UserRole.ADMIN.value]
MANAGEMENT = [UserRole.ADMIN.value, UserRole.MANAGER.value]
SALES_STAFF = [UserRole.ADMIN.value, UserRole.MANAGER.value, UserRole.CASHIER.value]


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=30, pattern=r"^[A-Za-z0-9_.]+$")
    email: EmailStr
    password: str = Field(..., min_length=6)
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    phone: Optional[str] = None

    @field_validator("username", "email")
    @classmethod
    def lowercase(cls, v):
        return v.strip().lower()


class LoginRequest(BaseModel):
    """Login with either the username or the email"""
    username: str = Field(..., min_length=1, description="Username or email")
    password: str = Field(..., min_length=1)


class UserPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    first_name: str
    last_name: str
    full_name: str
    role: str
    phone: Optional[str] = None
    permissions: List[str] = []
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime


class TokenResponse(BaseModel):
    success: bool = True
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserPublic
