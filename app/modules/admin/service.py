# app/modules/admin/service.py
import logging
from datetime import date
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.activity import log_activity
from app.core.auth.schemas import UserPublic, UserRole
from app.shared.database.models import Activity, User
from app.shared.pagination import paginate
from .repository import AdminRepository
from .schemas import ActivityResponse, UserCreate, UserStatusUpdate, UserUpdate

logger = logging.getLogger(__name__)


def activity_response(activity: Activity) -> ActivityResponse:
    response = ActivityResponse.model_validate(activity)
    response.username = activity.user.username if activity.user else None
    return response


class AdminService:
    """
    User management and the activity log
    """

    def __init__(self, db: Session):
        self.db = db
        self.repository = AdminRepository(db)

    def _get_user_or_404(self, user_id: int) -> User:
        user = self.repository.get_user(user_id)
        if not user:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        return user

    # ==================== USERS ====================

    async def create_user(self, user_data: UserCreate, admin: User) -> dict:
        if self.repository.find_user_conflict(user_data.username, user_data.email):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="User already exists with this email or username"
            )

        data = user_data.model_dump()
        data["role"] = user_data.role.value
        user = self.repository.create_user(data)

        log_activity(self.db, admin.id, "user_created", f"Created user {user.username} ({user.role})", "user", user.id)
        self.db.commit()
        logger.info(f"User {user.username} created by admin {admin.id}")
        return {
            "success": True,
            "message": "User created successfully",
            "data": UserPublic.model_validate(user)
        }

    async def list_users(
        self,
        page: int = 1,
        limit: int = 20,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None
    ) -> dict:
        users, pagination = paginate(self.repository.users_query(role, is_active, search), page, limit)
        return {
            "success": True,
            "count": len(users),
            "pagination": pagination,
            "data": [UserPublic.model_validate(u) for u in users]
        }

    async def get_user(self, user_id: int) -> dict:
        return {"success": True, "data": UserPublic.model_validate(self._get_user_or_404(user_id))}

    async def update_user(self, user_id: int, payload: UserUpdate, admin: User) -> dict:
        user = self._get_user_or_404(user_id)
        changes = payload.model_dump(exclude_unset=True)

        if changes.get("email"):
            changes["email"] = changes["email"].lower()
            if self.repository.find_user_conflict(None, changes["email"], exclude_id=user.id):
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already in use")
        if "role" in changes and changes["role"] is not None:
            if user.id == admin.id and changes["role"] != UserRole.ADMIN:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot change your own role")
            changes["role"] = changes["role"].value

        user = self.repository.update_user(user.id, changes)
        return {
            "success": True,
            "message": "User updated successfully",
            "data": UserPublic.model_validate(user)
        }

    async def set_status(self, user_id: int, payload: UserStatusUpdate, admin: User) -> dict:
        user = self._get_user_or_404(user_id)
        if user.id == admin.id and not payload.is_active:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot deactivate your own account")

        user.is_active = payload.is_active
        action = "user_activated" if payload.is_active else "user_deactivated"
        log_activity(self.db, admin.id, action, f"{action.replace('_', ' ').capitalize()}: {user.username}", "user", user.id)
        self.db.commit()
        self.db.refresh(user)
        return {"success": True, "data": UserPublic.model_validate(user)}

    async def delete_user(self, user_id: int, admin: User) -> dict:
        user = self._get_user_or_404(user_id)
        if user.id == admin.id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot delete your own account")
        if self.repository.has_history(user.id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="User has sales or expenses on record; deactivate the account instead"
            )

        username = user.username
        self.repository.delete_user(user)
        logger.info(f"User {username} deleted by admin {admin.id}")
        return {"success": True, "message": "User deleted successfully"}

    # ==================== ACTIVITIES ====================

    async def list_activities(
        self,
        page: int = 1,
        limit: int = 20,
        user_id: Optional[int] = None,
        action: Optional[str] = None,
        entity_type: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> dict:
        query = self.repository.activities_query(user_id, action, entity_type, start_date, end_date)
        activities, pagination = paginate(query, page, limit)
        return {
            "success": True,
            "count": len(activities),
            "pagination": pagination,
            "data": [activity_response(a) for a in activities]
        }

    async def recent_activities(self, limit: int = 10) -> dict:
        activities = self.repository.activities_query().limit(limit).all()
        return {"success": True, "data": [activity_response(a) for a in activities]}

    async def activity_stats(self, start_date: Optional[date] = None, end_date: Optional[date] = None) -> dict:
        by_action = self.repository.activity_counts(Activity.action, start_date, end_date)
        by_user = self.repository.activity_counts(Activity.user_id, start_date, end_date)[:10]

        users = {}
        user_ids = [user_id for user_id, _ in by_user if user_id]
        if user_ids:
            users = {u.id: u for u in self.db.query(User).filter(User.id.in_(user_ids)).all()}

        return {
            "success": True,
            "data": {
                "total_activities": sum(count for _, count in by_action),
                "action_stats": [{"action": action, "count": count} for action, count in by_action],
                "top_users": [
                    {
                        "user_id": user_id,
                        "username": users[user_id].username,
                        "full_name": users[user_id].full_name,
                        "count": count
                    }
                    for user_id, count in by_user if user_id in users
                ]
            }
        }

    async def clear_activities(self, before: Optional[date] = None) -> dict:
        deleted = self.repository.clear_activities(before)
        logger.info(f"Cleared {deleted} activity entries")
        return {"success": True, "message": f"{deleted} activities deleted"}
