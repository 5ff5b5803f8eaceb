# app/modules/admin/repository.py
from datetime import date, datetime, time
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session, joinedload

from app.core.auth.security import hash_password
from app.shared.database.models import (
    Activity, Category, Customer, Expense, Product, Sale, Supplier, User
)


class AdminRepository:
    """
    Data access for user management and the activity log
    """

    def __init__(self, db: Session):
        self.db = db

    # ==================== USERS ====================

    def create_user(self, user_data: dict) -> User:
        user_data["password_hash"] = hash_password(user_data.pop("password"))
        db_user = User(**user_data)
        self.db.add(db_user)
        self.db.commit()
        self.db.refresh(db_user)
        return db_user

    def update_user(self, user_id: int, update_data: dict) -> Optional[User]:
        user = self.db.query(User).filter(User.id == user_id).first()
        if user:
            if update_data.get("password"):
                update_data["password_hash"] = hash_password(update_data.pop("password"))
            for key, value in update_data.items():
                if hasattr(user, key) and value is not None:
                    setattr(user, key, value)
            self.db.commit()
            self.db.refresh(user)
        return user

    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def find_user_conflict(self, username: Optional[str], email: Optional[str], exclude_id: Optional[int] = None) -> Optional[User]:
        conditions = []
        if username:
            conditions.append(User.username == username)
        if email:
            conditions.append(User.email == email)
        if not conditions:
            return None
        query = self.db.query(User).filter(or_(*conditions))
        if exclude_id:
            query = query.filter(User.id != exclude_id)
        return query.first()

    def users_query(self, role: Optional[str] = None, is_active: Optional[bool] = None, search: Optional[str] = None) -> Query:
        query = self.db.query(User)
        if role:
            query = query.filter(User.role == role)
        if is_active is not None:
            query = query.filter(User.is_active.is_(is_active))
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                User.username.ilike(pattern),
                User.email.ilike(pattern),
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern)
            ))
        return query.order_by(User.created_at.desc(), User.id.desc())

    def has_history(self, user_id: int) -> bool:
        """True when sales or expenses reference the user"""
        sales = self.db.query(func.count(Sale.id)).filter(
            or_(Sale.cashier_id == user_id, Sale.refunded_by_id == user_id)
        ).scalar()
        expenses = self.db.query(func.count(Expense.id)).filter(
            or_(Expense.created_by_id == user_id, Expense.approved_by_id == user_id)
        ).scalar()
        return bool(sales or expenses)

    def delete_user(self, user: User):
        self.db.query(Activity).filter(Activity.user_id == user.id).update(
            {Activity.user_id: None}, synchronize_session=False
        )
        for model in (Category, Product, Customer, Supplier):
            self.db.query(model).filter(model.created_by_id == user.id).update(
                {model.created_by_id: None}, synchronize_session=False
            )
        self.db.delete(user)
        self.db.commit()

    # ==================== ACTIVITIES ====================

    def activities_query(
        self,
        user_id: Optional[int] = None,
        action: Optional[str] = None,
        entity_type: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> Query:
        query = self.db.query(Activity).options(joinedload(Activity.user))
        if user_id:
            query = query.filter(Activity.user_id == user_id)
        if action:
            query = query.filter(Activity.action == action)
        if entity_type:
            query = query.filter(Activity.entity_type == entity_type)
        if start_date:
            query = query.filter(Activity.created_at >= datetime.combine(start_date, time.min))
        if end_date:
            query = query.filter(Activity.created_at <= datetime.combine(end_date, time.max))
        return query.order_by(Activity.created_at.desc(), Activity.id.desc())

    def activity_counts(self, column, start_date: Optional[date] = None, end_date: Optional[date] = None) -> List[tuple]:
        query = self.db.query(column, func.count(Activity.id))
        if start_date:
            query = query.filter(Activity.created_at >= datetime.combine(start_date, time.min))
        if end_date:
            query = query.filter(Activity.created_at <= datetime.combine(end_date, time.max))
        return query.group_by(column).order_by(func.count(Activity.id).desc()).all()

    def clear_activities(self, before: Optional[date] = None) -> int:
        query = self.db.query(Activity)
        if before:
            query = query.filter(Activity.created_at < datetime.combine(before, time.min))
        deleted = query.delete(synchronize_session=False)
        self.db.commit()
        return deleted
