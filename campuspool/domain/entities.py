"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** on ``Ride``, ``Booking`` and ``EmergencyAlert``: each
  enforces its own lifecycle transitions from ``enums``.
- ``Ride.available_seats`` is a snapshot derived from the bookings that
  hold a seat (see ``seats.available_seats``); it is never decremented in
  place.

Both storage backends return these dataclasses, so route handlers never
see ORM objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from .enums import (
    ALERT_TRANSITIONS,
    BOOKING_TRANSITIONS,
    RIDE_TRANSITIONS,
    AlertStatus,
    AlertType,
    BookingStatus,
    RideStatus,
)


class InvalidStateTransition(Exception):
    """Raised when a status change violates an entity's state machine."""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _check_transition(transitions: dict, current, new) -> None:
    if new not in transitions.get(current, set()):
        raise InvalidStateTransition(
            f"Cannot transition from {current.value} to {new.value}"
        )


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class User:
    id: Optional[int] = None
    username: str = ""
    password_hash: str = ""
    full_name: str = ""
    email: str = ""
    university: str = ""
    phone: Optional[str] = None
    profile_image: Optional[str] = None
    bio: Optional[str] = None
    rating: float = 0.0
    review_count: int = 0
    is_driver: bool = False
    car_model: Optional[str] = None
    license_plate: Optional[str] = None
    is_admin: bool = False
    created_at: Optional[datetime] = None


@dataclass
class Ride:
    id: Optional[int] = None
    driver_id: int = 0
    origin: str = ""
    destination: str = ""
    departure_time: Optional[datetime] = None
    price: int = 0
    seat_capacity: int = 1
    available_seats: int = 1
    description: Optional[str] = None
    recurring: bool = False
    recurring_days: Optional[str] = None
    status: RideStatus = RideStatus.ACTIVE
    created_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == RideStatus.ACTIVE

    def transition_to(self, new_status: RideStatus) -> None:
        """Move to *new_status* if the transition is legal, else raise."""
        _check_transition(RIDE_TRANSITIONS, self.status, new_status)
        self.status = new_status


@dataclass
class Booking:
    id: Optional[int] = None
    ride_id: int = 0
    passenger_id: int = 0
    status: BookingStatus = BookingStatus.PENDING
    created_at: Optional[datetime] = None

    def transition_to(self, new_status: BookingStatus) -> bool:
        """
        Move to *new_status*.  Returns False when already there (no-op),
        True when the status changed; raises on an illegal transition.
        """
        if new_status == self.status:
            return False
        _check_transition(BOOKING_TRANSITIONS, self.status, new_status)
        self.status = new_status
        return True


@dataclass
class Message:
    id: Optional[int] = None
    sender_id: int = 0
    receiver_id: int = 0
    content: str = ""
    read: bool = False
    created_at: Optional[datetime] = None


@dataclass
class Review:
    id: Optional[int] = None
    reviewer_id: int = 0
    reviewee_id: int = 0
    ride_id: int = 0
    rating: int = 0
    comment: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class EmergencyContact:
    id: Optional[int] = None
    user_id: int = 0
    name: str = ""
    relationship: str = ""
    phone: str = ""
    email: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class EmergencyAlert:
    id: Optional[int] = None
    user_id: int = 0
    ride_id: int = 0
    type: AlertType = AlertType.OTHER
    description: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    status: AlertStatus = AlertStatus.ACTIVE
    resolved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def resolve(self, when: Optional[datetime] = None) -> None:
        _check_transition(ALERT_TRANSITIONS, self.status, AlertStatus.RESOLVED)
        self.status = AlertStatus.RESOLVED
        self.resolved_at = when or utcnow()


@dataclass
class Conversation:
    """Messages exchanged with one counterpart, as seen by one user."""

    user: User
    messages: list[Message] = field(default_factory=list)
    last_message: Optional[Message] = None
    unread_count: int = 0
