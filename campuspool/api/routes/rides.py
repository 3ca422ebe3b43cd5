"""
Ride endpoints
==============

GET    /api/rides                           -- active rides
GET    /api/rides/university/{university}   -- active rides by that university's drivers
GET    /api/rides/driver/{driver_id}        -- the caller's own rides, any status
GET    /api/rides/{ride_id}                 -- one ride
POST   /api/rides                           -- create (drivers only)
PUT    /api/rides/{ride_id}                 -- update (owner only)
DELETE /api/rides/{ride_id}                 -- cancel (owner only)

Cancelling a ride, by DELETE or by ``PUT {"status": "cancelled"}``,
cascades to every pending or confirmed booking on it.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from campuspool.api.dependencies import get_current_user, get_storage
from campuspool.api.middleware import limiter
from campuspool.api.schemas import (
    DriverSummary,
    RideCreateRequest,
    RideResponse,
    RideUpdateRequest,
    RideWithDriverResponse,
)
from campuspool.config import settings
from campuspool.domain.entities import Ride, User
from campuspool.domain.enums import RideStatus
from campuspool.domain.seats import capacity_for, seats_held
from campuspool.infrastructure.storage import Storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rides", tags=["rides"])

# Columns that may not be cleared with an explicit null
_REQUIRED_FIELDS = ("origin", "destination", "departure_time", "price", "recurring")


async def with_driver(storage: Storage, ride: Ride) -> RideWithDriverResponse:
    driver = await storage.get_user(ride.driver_id)
    response = RideWithDriverResponse.model_validate(ride)
    response.driver = DriverSummary.model_validate(driver) if driver else None
    return response


async def cancel_ride(storage: Storage, ride: Ride) -> Ride:
    """Cancel *ride* and every open booking on it."""
    ride.transition_to(RideStatus.CANCELLED)
    updated = await storage.update_ride(ride.id, status=ride.status)
    cancelled = await storage.cancel_open_bookings(ride.id)
    logger.info("Ride %d cancelled; %d open bookings cancelled", ride.id, cancelled)
    return updated


async def _owned_ride(storage: Storage, ride_id: int, user: User) -> Ride:
    ride = await storage.get_ride(ride_id, for_update=True)
    if ride is None:
        raise HTTPException(status_code=404, detail="Ride not found")
    if ride.driver_id != user.id:
        raise HTTPException(status_code=403, detail="You can only modify your own rides")
    return ride


@router.get("", response_model=list[RideResponse], summary="List active rides")
@limiter.limit(settings.rate_limit)
async def list_rides(
    request: Request,
    storage: Storage = Depends(get_storage),
):
    return await storage.list_active_rides()


@router.get(
    "/university/{university}",
    response_model=list[RideWithDriverResponse],
    summary="List active rides offered by drivers of a university",
)
@limiter.limit(settings.rate_limit)
async def list_university_rides(
    request: Request,
    university: str,
    storage: Storage = Depends(get_storage),
):
    rides = await storage.list_rides_by_university(university)
    logger.debug("Found %d rides for university %s", len(rides), university)
    return [await with_driver(storage, ride) for ride in rides]


@router.get(
    "/driver/{driver_id}",
    response_model=list[RideResponse],
    summary="List a driver's own rides",
)
@limiter.limit(settings.rate_limit)
async def list_driver_rides(
    request: Request,
    driver_id: int,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    if driver_id != user.id:
        raise HTTPException(status_code=403, detail="You can only list your own rides")
    return await storage.list_rides_by_driver(driver_id)


@router.get("/{ride_id}", response_model=RideResponse, summary="Get a ride")
@limiter.limit(settings.rate_limit)
async def get_ride(
    request: Request,
    ride_id: int,
    storage: Storage = Depends(get_storage),
):
    ride = await storage.get_ride(ride_id)
    if ride is None:
        raise HTTPException(status_code=404, detail="Ride not found")
    return ride


@router.post(
    "",
    status_code=201,
    response_model=RideResponse,
    summary="Offer a ride",
)
@limiter.limit(settings.rate_limit)
async def create_ride(
    request: Request,
    body: RideCreateRequest,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    if not user.is_driver:
        raise HTTPException(status_code=403, detail="Only drivers can create rides")
    if body.driver_id is not None and body.driver_id != user.id:
        raise HTTPException(
            status_code=400, detail="Driver ID must match the current user's ID"
        )

    ride = await storage.create_ride(
        Ride(
            driver_id=user.id,
            origin=body.origin,
            destination=body.destination,
            departure_time=body.departure_time,
            price=body.price,
            seat_capacity=body.available_seats,
            available_seats=body.available_seats,
            description=body.description,
            recurring=body.recurring,
            recurring_days=body.recurring_days,
            status=RideStatus.ACTIVE,
        )
    )
    logger.info("Driver %d created ride %d (%d seats)", user.id, ride.id, ride.seat_capacity)
    return ride


@router.put(
    "/{ride_id}",
    response_model=RideResponse,
    summary="Update a ride",
    description=(
        "``availableSeats`` sets the number of open seats; seats held by "
        "pending, confirmed or completed bookings are kept on top of it. "
        "``status: cancelled`` cancels the ride and its open bookings."
    ),
)
@limiter.limit(settings.rate_limit)
async def update_ride(
    request: Request,
    ride_id: int,
    body: RideUpdateRequest,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    ride = await _owned_ride(storage, ride_id, user)
    if not ride.is_active:
        raise HTTPException(status_code=409, detail="Cannot update a cancelled ride")

    changes = body.model_dump(exclude_unset=True, exclude={"status", "available_seats"})
    for name in _REQUIRED_FIELDS:
        if name in changes and changes[name] is None:
            del changes[name]
    if body.available_seats is not None:
        bookings = await storage.list_bookings_by_ride(ride.id)
        held = seats_held(b.status for b in bookings)
        changes["seat_capacity"] = capacity_for(body.available_seats, held)

    if changes:
        ride = await storage.update_ride(ride.id, **changes)
    if body.status == RideStatus.CANCELLED:
        ride = await cancel_ride(storage, ride)
    return ride


@router.delete(
    "/{ride_id}",
    status_code=204,
    summary="Cancel a ride",
    description=(
        "Transitions the ride to ``cancelled`` and cancels every pending or "
        "confirmed booking on it.  The record is kept."
    ),
)
@limiter.limit(settings.rate_limit)
async def delete_ride(
    request: Request,
    ride_id: int,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    ride = await _owned_ride(storage, ride_id, user)
    await cancel_ride(storage, ride)
