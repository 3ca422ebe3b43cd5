"""
Emergency endpoints
===================

GET    /api/emergency-contacts              -- own contacts
POST   /api/emergency-contacts              -- add a contact
PUT    /api/emergency-contacts/{id}         -- edit own contact
DELETE /api/emergency-contacts/{id}         -- remove own contact
GET    /api/emergency-alerts                -- own alerts (admins: all active)
POST   /api/emergency-alerts                -- raise an alert on a ride
PUT    /api/emergency-alerts/{id}/resolve   -- resolve (creator or admin)

Raising an alert records it and logs it at WARNING level.  Nothing is
sent to the user's emergency contacts.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from campuspool.api.dependencies import get_current_user, get_storage
from campuspool.api.middleware import limiter
from campuspool.api.schemas import (
    EmergencyAlertCreateRequest,
    EmergencyAlertResponse,
    EmergencyContactRequest,
    EmergencyContactResponse,
    EmergencyContactUpdateRequest,
)
from campuspool.config import settings
from campuspool.domain.entities import EmergencyAlert, EmergencyContact, User
from campuspool.domain.enums import AlertStatus, BookingStatus
from campuspool.infrastructure.storage import Storage

logger = logging.getLogger(__name__)

router = APIRouter(tags=["emergency"])

_PARTICIPANT_STATUSES = {BookingStatus.CONFIRMED, BookingStatus.COMPLETED}


async def _own_contact(storage: Storage, contact_id: int, user: User) -> EmergencyContact:
    contact = await storage.get_emergency_contact(contact_id)
    if contact is None:
        raise HTTPException(status_code=404, detail="Emergency contact not found")
    if contact.user_id != user.id:
        raise HTTPException(
            status_code=403, detail="You can only manage your own emergency contacts"
        )
    return contact


# ── Contacts ──────────────────────────────────────────────────────────


@router.get(
    "/emergency-contacts",
    response_model=list[EmergencyContactResponse],
    summary="List your emergency contacts",
)
@limiter.limit(settings.rate_limit)
async def list_contacts(
    request: Request,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return await storage.list_emergency_contacts(user.id)


@router.post(
    "/emergency-contacts",
    status_code=201,
    response_model=EmergencyContactResponse,
    summary="Add an emergency contact",
)
@limiter.limit(settings.rate_limit)
async def create_contact(
    request: Request,
    body: EmergencyContactRequest,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return await storage.create_emergency_contact(
        EmergencyContact(user_id=user.id, **body.model_dump())
    )


@router.put(
    "/emergency-contacts/{contact_id}",
    response_model=EmergencyContactResponse,
    summary="Edit an emergency contact",
)
@limiter.limit(settings.rate_limit)
async def update_contact(
    request: Request,
    contact_id: int,
    body: EmergencyContactUpdateRequest,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    contact = await _own_contact(storage, contact_id, user)
    changes = body.model_dump(exclude_unset=True)
    for name in ("name", "relationship", "phone"):
        if name in changes and changes[name] is None:
            del changes[name]
    if not changes:
        return contact
    return await storage.update_emergency_contact(contact.id, **changes)


@router.delete(
    "/emergency-contacts/{contact_id}",
    status_code=204,
    summary="Delete an emergency contact",
)
@limiter.limit(settings.rate_limit)
async def delete_contact(
    request: Request,
    contact_id: int,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    contact = await _own_contact(storage, contact_id, user)
    await storage.delete_emergency_contact(contact.id)


# ── Alerts ────────────────────────────────────────────────────────────


@router.get(
    "/emergency-alerts",
    response_model=list[EmergencyAlertResponse],
    summary="List emergency alerts",
    description="Your own alerts; administrators see every active alert.",
)
@limiter.limit(settings.rate_limit)
async def list_alerts(
    request: Request,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    if user.is_admin:
        return await storage.list_active_emergency_alerts()
    return await storage.list_emergency_alerts(user.id)


@router.post(
    "/emergency-alerts",
    status_code=201,
    response_model=EmergencyAlertResponse,
    summary="Raise an emergency alert",
)
@limiter.limit(settings.rate_limit)
async def create_alert(
    request: Request,
    body: EmergencyAlertCreateRequest,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    ride = await storage.get_ride(body.ride_id)
    if ride is None:
        raise HTTPException(status_code=404, detail="Ride not found")

    if ride.driver_id != user.id:
        bookings = await storage.list_bookings_by_passenger(user.id)
        if not any(
            b.ride_id == ride.id and b.status in _PARTICIPANT_STATUSES
            for b in bookings
        ):
            raise HTTPException(
                status_code=403,
                detail="You can only create alerts for rides you're participating in",
            )

    alert = await storage.create_emergency_alert(
        EmergencyAlert(
            user_id=user.id,
            ride_id=ride.id,
            type=body.type,
            description=body.description,
            latitude=body.latitude,
            longitude=body.longitude,
            status=AlertStatus.ACTIVE,
        )
    )
    contacts = await storage.list_emergency_contacts(user.id)
    logger.warning(
        "Emergency alert %d (%s) raised by user %d on ride %d; %d contacts on file",
        alert.id, alert.type.value, user.id, ride.id, len(contacts),
    )
    return alert


@router.put(
    "/emergency-alerts/{alert_id}/resolve",
    status_code=204,
    summary="Resolve an emergency alert",
)
@limiter.limit(settings.rate_limit)
async def resolve_alert(
    request: Request,
    alert_id: int,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    alert = await storage.get_emergency_alert(alert_id)
    if alert is None:
        raise HTTPException(status_code=404, detail="Emergency alert not found")
    if alert.user_id != user.id and not user.is_admin:
        raise HTTPException(
            status_code=403,
            detail="You can only resolve your own alerts or must be an admin",
        )
    await storage.resolve_emergency_alert(alert.id)
    logger.info("Emergency alert %d resolved by user %d", alert.id, user.id)
