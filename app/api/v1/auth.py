# app/api/v1/auth.py
import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.config.database import get_db
from app.config.settings import settings
from app.core.activity import log_activity
from app.core.auth.dependencies import get_current_user
from app.core.auth.schemas import (
    LoginRequest, RegisterRequest, TokenResponse, UserPublic, UserRole
)
from app.core.auth.security import create_access_token, hash_password, verify_password
from app.shared.database.models import User

logger = logging.getLogger(__name__)

router = APIRouter()


def _token_response(user: User) -> TokenResponse:
    return TokenResponse(
        token=create_access_token(user.id, role=user.role),
        expires_in=settings.access_token_expire_minutes * 60,
        user=UserPublic.model_validate(user)
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    """
    Self-registration. New accounts always get the staff role; elevated
    roles are granted through the user management endpoints.
    """
    existing = db.query(User).filter(
        or_(User.email == payload.email, User.username == payload.username)
    ).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User already exists with this email or username"
        )

    user = User(
        username=payload.username,
        email=payload.email,
        password_hash=hash_password(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        phone=payload.phone,
        role=UserRole.STAFF.value,
        permissions=[]
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info(f"Registered user {user.username} (id={user.id})")
    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
async def login(payload: LoginRequest, db: Session = Depends(get_db)):
    """Authenticate with username or email"""
    identifier = payload.username.strip().lower()
    user = db.query(User).filter(
        or_(User.username == identifier, User.email == identifier)
    ).first()

    if not user or not verify_password(payload.password, user.password_hash):
        logger.warning(f"Failed login attempt for '{identifier}'")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account is deactivated")

    user.last_login = datetime.now()
    log_activity(db, user.id, "login", f"User {user.username} logged in", "user", user.id)
    db.commit()
    db.refresh(user)

    return _token_response(user)


@router.get("/me")
async def get_me(current_user: User = Depends(get_current_user)):
    return {
        "success": True,
        "data": UserPublic.model_validate(current_user)
    }
