"""
Account endpoints: registration, login and profile.
"""

import logging

from fastapi import APIRouter, Depends, status

from api.dependencies import get_config, get_current_user, get_db
from api.schemas.user import (
    AdminCheckResponse,
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    TokenResponse,
    UserPublic,
)
from movie_reviews.config import Config
from movie_reviews.database import DatabaseManager
from movie_reviews.errors import AuthenticationError
from movie_reviews.models import UserData
from movie_reviews.security import create_access_token, hash_password, verify_password

router = APIRouter()
logger = logging.getLogger("api.auth")


def _token_response(user: UserData, config: Config) -> TokenResponse:
    return TokenResponse(
        token=create_access_token(user, config),
        user=UserPublic(**user.to_public_dict()),
    )


@router.post("/auth/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(
    request: RegisterRequest,
    db: DatabaseManager = Depends(get_db),
    config: Config = Depends(get_config),
):
    """
    Create an account and log it in.

    New accounts are never administrators; use the CLI to create one.
    """
    user = db.users.create(
        username=request.username.strip(),
        email=request.email.strip().lower(),
        password_hash=hash_password(request.password),
    )
    logger.info(f"User registered: id={user.id}")
    return _token_response(user, config)


@router.post("/auth/login", response_model=TokenResponse)
def login(
    request: LoginRequest,
    db: DatabaseManager = Depends(get_db),
    config: Config = Depends(get_config),
):
    """Exchange email and password for a bearer token."""
    user = db.users.find_by_email(request.email.strip().lower())
    if user is None or not verify_password(request.password, user.password_hash):
        logger.warning("Login failed: invalid credentials")
        raise AuthenticationError("Invalid email or password")

    logger.info(f"User logged in: id={user.id}")
    return _token_response(user, config)


@router.get("/auth/profile", response_model=UserPublic)
def get_profile(user: UserData = Depends(get_current_user)):
    """The caller's profile."""
    return user.to_public_dict()


@router.put("/auth/profile", response_model=UserPublic)
def update_profile(
    request: ProfileUpdate,
    user: UserData = Depends(get_current_user),
    db: DatabaseManager = Depends(get_db),
):
    """Change the caller's username."""
    updated = db.users.update_profile(user.id, request.username.strip())
    return updated.to_public_dict()


@router.get("/auth/check-admin", response_model=AdminCheckResponse)
def check_admin(user: UserData = Depends(get_current_user)):
    return AdminCheckResponse(is_admin=user.is_admin)
