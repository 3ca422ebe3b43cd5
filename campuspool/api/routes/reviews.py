"""
Review endpoints
================

POST /api/reviews                 -- rate a ride participant
GET  /api/reviews/user/{user_id}  -- reviews a user has received

Only the ride's driver, or a passenger whose booking on it is
``completed``, may review.  Each insert recomputes the reviewee's
rating and review count.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from campuspool.api.dependencies import get_current_user, get_storage
from campuspool.api.middleware import limiter
from campuspool.api.schemas import ReviewCreateRequest, ReviewResponse
from campuspool.config import settings
from campuspool.domain.entities import Review, User
from campuspool.domain.enums import BookingStatus
from campuspool.infrastructure.storage import Storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.get(
    "/user/{user_id}",
    response_model=list[ReviewResponse],
    summary="Reviews received by a user",
)
@limiter.limit(settings.rate_limit)
async def list_reviews(
    request: Request,
    user_id: int,
    storage: Storage = Depends(get_storage),
):
    return await storage.list_reviews_for(user_id)


@router.post(
    "",
    status_code=201,
    response_model=ReviewResponse,
    summary="Leave a review",
)
@limiter.limit(settings.rate_limit)
async def create_review(
    request: Request,
    body: ReviewCreateRequest,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    if await storage.get_user(body.reviewee_id) is None:
        raise HTTPException(status_code=404, detail="Reviewee not found")
    ride = await storage.get_ride(body.ride_id)
    if ride is None:
        raise HTTPException(status_code=404, detail="Ride not found")
    if body.reviewee_id == user.id:
        raise HTTPException(status_code=400, detail="You cannot review yourself")

    if ride.driver_id != user.id:
        bookings = await storage.list_bookings_by_passenger(user.id)
        if not any(
            b.ride_id == ride.id and b.status == BookingStatus.COMPLETED
            for b in bookings
        ):
            raise HTTPException(
                status_code=403,
                detail="You can only review rides you participated in",
            )

    review = await storage.create_review(
        Review(
            reviewer_id=user.id,
            reviewee_id=body.reviewee_id,
            ride_id=ride.id,
            rating=body.rating,
            comment=body.comment,
        )
    )
    logger.info(
        "User %d reviewed user %d on ride %d (%d/5)",
        user.id, body.reviewee_id, ride.id, body.rating,
    )
    return review
