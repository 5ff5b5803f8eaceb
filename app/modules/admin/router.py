# app/modules/admin/router.py
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.config.database import get_db
from app.core.auth.dependencies import require_roles
from app.core.auth.schemas import ADMIN_ONLY, MANAGEMENT, UserRole
from app.shared.database.models import User
from .schemas import UserCreate, UserStatusUpdate, UserUpdate
from .service import AdminService

router = APIRouter(prefix="/users", tags=["Admin - Users"])
activities_router = APIRouter(prefix="/activities", tags=["Admin - Activities"])

# ==================== USERS ====================

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    current_user: User = Depends(require_roles(ADMIN_ONLY)),
    db: Session = Depends(get_db)
):
    """
    Create a user with any role

    - Username and email must be unique
    - Permissions must be known permission names
    """
    service = AdminService(db)
    return await service.create_user(user_data, current_user)


@router.get("")
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    role: Optional[UserRole] = Query(None),
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None),
    current_user: User = Depends(require_roles(MANAGEMENT)),
    db: Session = Depends(get_db)
):
    service = AdminService(db)
    return await service.list_users(page, limit, role.value if role else None, is_active, search)


@router.get("/{user_id}")
async def get_user(
    user_id: int,
    current_user: User = Depends(require_roles(MANAGEMENT)),
    db: Session = Depends(get_db)
):
    service = AdminService(db)
    return await service.get_user(user_id)


@router.put("/{user_id}")
async def update_user(
    user_id: int,
    payload: UserUpdate,
    current_user: User = Depends(require_roles(ADMIN_ONLY)),
    db: Session = Depends(get_db)
):
    service = AdminService(db)
    return await service.update_user(user_id, payload, current_user)


@router.put("/{user_id}/status")
async def set_user_status(
    user_id: int,
    payload: UserStatusUpdate,
    current_user: User = Depends(require_roles(ADMIN_ONLY)),
    db: Session = Depends(get_db)
):
    service = AdminService(db)
    return await service.set_status(user_id, payload, current_user)


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    current_user: User = Depends(require_roles(ADMIN_ONLY)),
    db: Session = Depends(get_db)
):
    service = AdminService(db)
    return await service.delete_user(user_id, current_user)

# ==================== ACTIVITIES ====================

@activities_router.get("")
async def list_activities(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user_id: Optional[int] = Query(None),
    action: Optional[str] = Query(None),
    entity_type: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    current_user: User = Depends(require_roles(MANAGEMENT)),
    db: Session = Depends(get_db)
):
    service = AdminService(db)
    return await service.list_activities(page, limit, user_id, action, entity_type, start_date, end_date)


@activities_router.get("/recent")
async def recent_activities(
    limit: int = Query(10, ge=1, le=50),
    current_user: User = Depends(require_roles(MANAGEMENT)),
    db: Session = Depends(get_db)
):
    service = AdminService(db)
    return await service.recent_activities(limit)


@activities_router.get("/stats")
async def activity_stats(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    current_user: User = Depends(require_roles(MANAGEMENT)),
    db: Session = Depends(get_db)
):
    service = AdminService(db)
    return await service.activity_stats(start_date, end_date)


@activities_router.delete("")
async def clear_activities(
    before: Optional[date] = Query(None, description="Only delete entries older than this date"),
    current_user: User = Depends(require_roles(ADMIN_ONLY)),
    db: Session = Depends(get_db)
):
    service = AdminService(db)
    return await service.clear_activities(before)
