# app/modules/admin/schemas.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.core.auth.schemas import UserRole

# Permission names a user can be granted on top of the role
PERMISSIONS = [
    "sales:create", "sales:refund", "sales:read",
    "products:write", "customers:write", "suppliers:write",
    "expenses:write", "reports:read", "users:manage", "printing:use",
]

# ==================== USERS ====================

class UserCreate(BaseModel):
    """Create a user with a role"""
    username: str = Field(..., min_length=3, max_length=30, pattern=r"^[A-Za-z0-9_.]+$")
    email: EmailStr
    password: str = Field(..., min_length=6, description="At least 6 characters")
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    role: UserRole = UserRole.STAFF
    phone: Optional[str] = None
    permissions: List[str] = []

    @field_validator("username", "email")
    @classmethod
    def lowercase(cls, v):
        return v.strip().lower()

    @field_validator("permissions")
    @classmethod
    def known_permissions(cls, v):
        unknown = [p for p in v if p not in PERMISSIONS]
        if unknown:
            raise ValueError(f"Unknown permissions: {', '.join(unknown)}")
        return sorted(set(v))


class UserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, min_length=1, max_length=50)
    role: Optional[UserRole] = None
    phone: Optional[str] = None
    permissions: Optional[List[str]] = None
    password: Optional[str] = Field(None, min_length=6)

    @field_validator("permissions")
    @classmethod
    def known_permissions(cls, v):
        if v is None:
            return v
        unknown = [p for p in v if p not in PERMISSIONS]
        if unknown:
            raise ValueError(f"Unknown permissions: {', '.join(unknown)}")
        return sorted(set(v))


class UserStatusUpdate(BaseModel):
    is_active: bool

# ==================== ACTIVITIES ====================

class ActivityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[int] = None
    username: Optional[str] = None
    action: str
    entity_type: Optional[str] = None
    entity_id: Optional[int] = None
    description: Optional[str] = None
    created_at: datetime
