# routers/auth.py
import logging
from datetime import timedelta
from typing import Annotated, List

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from database import get_db
from models import User
from schemas.auth import UserCreate, LoginRequest, Token, UserResponse
from schemas.common import ApiResponse
from utils.auth import (
    create_user, authenticate_user, create_access_token,
    CurrentUser, CurrentAdmin, ACCESS_TOKEN_EXPIRE_MINUTES
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _issue_token(db: Session, login: str, password: str) -> Token:
    user = authenticate_user(db, login, password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username/email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user account"
        )

    access_token = create_access_token(
        data={"sub": user.username},
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    logger.info(f"User {user.username} logged in")

    return Token(
        access_token=access_token,
        token_type="bearer",
        user=UserResponse.model_validate(user)
    )


@router.post("/register", response_model=ApiResponse[UserResponse], status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, db: Session = Depends(get_db)):
    user = create_user(db, user_data)
    logger.info(f"Registered user {user.username}")
    return ApiResponse(
        message="User registered successfully",
        data=UserResponse.model_validate(user)
    )


@router.post("/login", response_model=Token)
async def login(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: Session = Depends(get_db)
):
    return _issue_token(db, form_data.username, form_data.password)


@router.post("/login/json", response_model=Token)
async def login_json(credentials: LoginRequest, db: Session = Depends(get_db)):
    return _issue_token(db, credentials.username, credentials.password)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: CurrentUser):
    return UserResponse.model_validate(current_user)


@router.get("/users", response_model=List[UserResponse])
async def get_all_users(
    current_admin: CurrentAdmin,
    db: Session = Depends(get_db)
):
    users = db.query(User).order_by(User.id).all()
    return [UserResponse.model_validate(user) for user in users]
