"""
Authentication endpoints
========================

POST /api/register -- create an account, returns a bearer token
POST /api/login    -- exchange credentials for a bearer token
POST /api/logout   -- no-op; tokens are stateless
GET  /api/user     -- the authenticated user
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from campuspool.api.dependencies import get_current_user, get_storage
from campuspool.api.middleware import limiter
from campuspool.api.schemas import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    UserResponse,
)
from campuspool.api.security import (
    create_access_token,
    hash_password,
    verify_password,
)
from campuspool.config import settings
from campuspool.domain.entities import User
from campuspool.infrastructure.storage import Storage

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.post(
    "/register",
    status_code=201,
    response_model=AuthResponse,
    summary="Register a new account",
)
@limiter.limit(settings.rate_limit)
async def register(
    request: Request,
    body: RegisterRequest,
    storage: Storage = Depends(get_storage),
):
    if await storage.get_user_by_username(body.username):
        raise HTTPException(status_code=400, detail="Username already exists")
    if await storage.get_user_by_email(body.email):
        raise HTTPException(status_code=400, detail="Email already registered")

    fields = body.model_dump(exclude={"password"})
    user = await storage.create_user(
        User(password_hash=hash_password(body.password), **fields)
    )
    logger.info("Registered user %d (%s)", user.id, user.username)
    return AuthResponse(
        token=create_access_token(user.id),
        user=UserResponse.model_validate(user),
    )


@router.post("/login", response_model=AuthResponse, summary="Log in")
@limiter.limit(settings.rate_limit)
async def login(
    request: Request,
    body: LoginRequest,
    storage: Storage = Depends(get_storage),
):
    user = await storage.get_user_by_username(body.username)
    if user is None or not verify_password(body.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid username or password")
    return AuthResponse(
        token=create_access_token(user.id),
        user=UserResponse.model_validate(user),
    )


@router.post("/logout", summary="Log out")
async def logout():
    return {"status": "ok"}


@router.get("/user", response_model=UserResponse, summary="Current user")
async def current_user(user: User = Depends(get_current_user)):
    return user
