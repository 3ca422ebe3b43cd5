"""
Booking endpoints
=================

POST   /api/bookings                   -- request a seat (status ``pending``)
PUT    /api/bookings/{booking_id}/status -- confirm / cancel / complete
DELETE /api/bookings/{booking_id}      -- remove the booking, releasing its seat
GET    /api/bookings/ride/{ride_id}    -- bookings on a ride (driver only)
GET    /api/bookings/passenger         -- the caller's bookings with ride details

Seats are never counted here: a ride's ``availableSeats`` is re-derived
from its bookings on every read, so changing a booking's status is the
only write needed.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from campuspool.api.dependencies import get_current_user, get_storage
from campuspool.api.middleware import limiter
from campuspool.api.routes.rides import with_driver
from campuspool.api.schemas import (
    BookingCreateRequest,
    BookingResponse,
    BookingStatusRequest,
    BookingWithRideResponse,
)
from campuspool.config import settings
from campuspool.domain.entities import Booking, Ride, User
from campuspool.domain.enums import BookingStatus
from campuspool.infrastructure.storage import Storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])


async def _booking_and_ride(
    storage: Storage, booking_id: int, user: User
) -> tuple[Booking, Ride]:
    """
    Lock a booking's ride, then re-read the booking under that lock.

    Only the booking's passenger or the ride's driver may proceed.  The
    first read only finds the ride; the status checked by the caller is the
    one read after the lock is held.
    """
    found = await storage.get_booking(booking_id)
    if found is None:
        raise HTTPException(status_code=404, detail="Booking not found")
    ride = await storage.get_ride(found.ride_id, for_update=True)
    if ride is None:
        raise HTTPException(status_code=404, detail="Ride not found")
    booking = await storage.get_booking(booking_id, for_update=True)
    if booking is None:
        raise HTTPException(status_code=404, detail="Booking not found")
    if user.id not in (booking.passenger_id, ride.driver_id):
        raise HTTPException(
            status_code=403, detail="You can only update your own bookings"
        )
    return booking, ride


@router.post(
    "",
    status_code=201,
    response_model=BookingResponse,
    summary="Book a seat on a ride",
)
@limiter.limit(settings.rate_limit)
async def create_booking(
    request: Request,
    body: BookingCreateRequest,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    # Row lock held until commit: the seat check and the insert are atomic
    ride = await storage.get_ride(body.ride_id, for_update=True)
    if ride is None:
        raise HTTPException(status_code=404, detail="Ride not found")
    if not ride.is_active:
        raise HTTPException(status_code=400, detail="This ride is no longer active")
    if ride.available_seats < 1:
        raise HTTPException(status_code=400, detail="No available seats for this ride")
    if ride.driver_id == user.id:
        raise HTTPException(status_code=400, detail="You cannot book your own ride")

    existing = await storage.list_bookings_by_passenger(user.id)
    if any(
        b.ride_id == ride.id and b.status != BookingStatus.CANCELLED for b in existing
    ):
        raise HTTPException(status_code=400, detail="You have already booked this ride")

    booking = await storage.create_booking(ride.id, user.id)
    logger.info("Passenger %d booked ride %d (booking %d)", user.id, ride.id, booking.id)
    return booking


@router.put(
    "/{booking_id}/status",
    response_model=BookingResponse,
    summary="Change a booking's status",
    description=(
        "The passenger or the ride's driver may cancel; only the driver may "
        "confirm.  Requesting the current status is a no-op."
    ),
)
@limiter.limit(settings.rate_limit)
async def update_booking_status(
    request: Request,
    booking_id: int,
    body: BookingStatusRequest,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    booking, ride = await _booking_and_ride(storage, booking_id, user)
    if body.status == BookingStatus.CONFIRMED and user.id != ride.driver_id:
        raise HTTPException(
            status_code=403, detail="Only the driver can confirm a booking"
        )

    previous = booking.status
    if booking.transition_to(body.status):
        booking = await storage.update_booking_status(booking.id, booking.status)
        logger.info(
            "Booking %d: %s -> %s by user %d",
            booking.id, previous.value, booking.status.value, user.id,
        )
    return booking


@router.delete("/{booking_id}", status_code=204, summary="Delete a booking")
@limiter.limit(settings.rate_limit)
async def delete_booking(
    request: Request,
    booking_id: int,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    booking, _ = await _booking_and_ride(storage, booking_id, user)
    await storage.delete_booking(booking.id)
    logger.info("Booking %d deleted by user %d", booking.id, user.id)


@router.get(
    "/ride/{ride_id}",
    response_model=list[BookingResponse],
    summary="List bookings on one of your rides",
)
@limiter.limit(settings.rate_limit)
async def list_ride_bookings(
    request: Request,
    ride_id: int,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    ride = await storage.get_ride(ride_id)
    if ride is None:
        raise HTTPException(status_code=404, detail="Ride not found")
    if ride.driver_id != user.id:
        raise HTTPException(
            status_code=403, detail="You can only view bookings for your own rides"
        )
    return await storage.list_bookings_by_ride(ride_id)


@router.get(
    "/passenger",
    response_model=list[BookingWithRideResponse],
    summary="List your bookings with ride and driver details",
)
@limiter.limit(settings.rate_limit)
async def list_passenger_bookings(
    request: Request,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    result: list[BookingWithRideResponse] = []
    for booking in await storage.list_bookings_by_passenger(user.id):
        ride = await storage.get_ride(booking.ride_id)
        dto = BookingWithRideResponse.model_validate(booking)
        dto.ride = await with_driver(storage, ride) if ride else None
        result.append(dto)
    return result
