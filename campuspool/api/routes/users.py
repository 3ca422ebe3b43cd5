"""
User profile endpoints
======================

GET /api/users/{user_id}  -- public profile
PUT /api/users/profile    -- update own profile
GET /api/universities     -- supported universities
"""

from fastapi import APIRouter, Depends, HTTPException, Request

from campuspool.api.dependencies import get_current_user, get_storage
from campuspool.api.middleware import limiter
from campuspool.api.schemas import ProfileUpdateRequest, UserResponse
from campuspool.config import settings
from campuspool.domain.entities import User
from campuspool.domain.enums import UNIVERSITIES
from campuspool.infrastructure.storage import Storage

router = APIRouter(tags=["users"])


@router.get("/universities", response_model=list[str], summary="List universities")
async def list_universities():
    return UNIVERSITIES


@router.put(
    "/users/profile",
    response_model=UserResponse,
    summary="Update the authenticated user's profile",
    description="Password, rating and review count cannot be changed here.",
)
@limiter.limit(settings.rate_limit)
async def update_profile(
    request: Request,
    body: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    changes = body.model_dump(exclude_unset=True)
    # null clears optional fields only
    for required in ("full_name", "university", "is_driver"):
        if required in changes and changes[required] is None:
            del changes[required]

    updated = await storage.update_user(user.id, **changes)
    if updated is None:
        raise HTTPException(status_code=404, detail="User not found")
    return updated


@router.get("/users/{user_id}", response_model=UserResponse, summary="Get a user")
@limiter.limit(settings.rate_limit)
async def get_user(
    request: Request,
    user_id: int,
    storage: Storage = Depends(get_storage),
):
    user = await storage.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user
