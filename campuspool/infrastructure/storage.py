"""
Storage interface and its in-memory implementation.

``Storage`` is the capability set the API layer depends on.  Two
conforming backends exist:

* ``MemoryStorage`` (this module) -- dict tables, for local runs and tests.
* ``SqlStorage`` (``repositories``) -- SQLAlchemy over one ``AsyncSession``.

The backend is chosen once in ``create_app`` and never mixed at runtime.
All methods take and return domain entities; ride snapshots always carry
a freshly derived ``available_seats``.
"""

from __future__ import annotations

import itertools
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import replace
from typing import Optional

from campuspool.domain.entities import (
    Booking,
    EmergencyAlert,
    EmergencyContact,
    Message,
    Review,
    Ride,
    User,
    utcnow,
)
from campuspool.domain.enums import (
    OPEN_BOOKING_STATUSES,
    AlertStatus,
    BookingStatus,
    RideStatus,
)
from campuspool.domain.ratings import aggregate_rating
from campuspool.domain.seats import available_seats, seats_held


class Storage(ABC):
    # ── Users ─────────────────────────────────────────────────────────

    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[User]: ...

    @abstractmethod
    async def get_user_by_username(self, username: str) -> Optional[User]: ...

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[User]: ...

    @abstractmethod
    async def create_user(self, user: User) -> User: ...

    @abstractmethod
    async def update_user(self, user_id: int, **fields) -> Optional[User]: ...

    # ── Rides ─────────────────────────────────────────────────────────

    @abstractmethod
    async def get_ride(
        self, ride_id: int, *, for_update: bool = False
    ) -> Optional[Ride]:
        """Fetch a ride; ``for_update`` locks its row until commit."""

    @abstractmethod
    async def list_active_rides(self) -> list[Ride]: ...

    @abstractmethod
    async def list_rides_by_driver(self, driver_id: int) -> list[Ride]: ...

    @abstractmethod
    async def list_rides_by_university(self, university: str) -> list[Ride]: ...

    @abstractmethod
    async def create_ride(self, ride: Ride) -> Ride: ...

    @abstractmethod
    async def update_ride(self, ride_id: int, **fields) -> Optional[Ride]: ...

    # ── Bookings ──────────────────────────────────────────────────────

    @abstractmethod
    async def get_booking(
        self, booking_id: int, *, for_update: bool = False
    ) -> Optional[Booking]:
        """Fetch a booking; ``for_update`` locks its row and re-reads it."""

    @abstractmethod
    async def list_bookings_by_ride(self, ride_id: int) -> list[Booking]: ...

    @abstractmethod
    async def list_bookings_by_passenger(self, passenger_id: int) -> list[Booking]: ...

    @abstractmethod
    async def create_booking(self, ride_id: int, passenger_id: int) -> Booking: ...

    @abstractmethod
    async def update_booking_status(
        self, booking_id: int, status: BookingStatus
    ) -> Optional[Booking]: ...

    @abstractmethod
    async def delete_booking(self, booking_id: int) -> bool: ...

    @abstractmethod
    async def cancel_open_bookings(self, ride_id: int) -> int:
        """Cancel every pending/confirmed booking on a ride; return the count."""

    # ── Messages ──────────────────────────────────────────────────────

    @abstractmethod
    async def get_message(self, message_id: int) -> Optional[Message]: ...

    @abstractmethod
    async def list_messages_between(
        self, user_a: int, user_b: int, after_id: Optional[int] = None
    ) -> list[Message]: ...

    @abstractmethod
    async def list_user_messages(self, user_id: int) -> list[Message]: ...

    @abstractmethod
    async def create_message(
        self, sender_id: int, receiver_id: int, content: str
    ) -> Message: ...

    @abstractmethod
    async def mark_message_read(self, message_id: int) -> bool: ...

    # ── Reviews ───────────────────────────────────────────────────────

    @abstractmethod
    async def list_reviews_for(self, reviewee_id: int) -> list[Review]: ...

    @abstractmethod
    async def create_review(self, review: Review) -> Review:
        """Insert a review and recompute the reviewee's aggregate rating."""

    # ── Emergency ─────────────────────────────────────────────────────

    @abstractmethod
    async def list_emergency_contacts(self, user_id: int) -> list[EmergencyContact]: ...

    @abstractmethod
    async def get_emergency_contact(self, contact_id: int) -> Optional[EmergencyContact]: ...

    @abstractmethod
    async def create_emergency_contact(
        self, contact: EmergencyContact
    ) -> EmergencyContact: ...

    @abstractmethod
    async def update_emergency_contact(
        self, contact_id: int, **fields
    ) -> Optional[EmergencyContact]: ...

    @abstractmethod
    async def delete_emergency_contact(self, contact_id: int) -> bool: ...

    @abstractmethod
    async def list_emergency_alerts(self, user_id: int) -> list[EmergencyAlert]: ...

    @abstractmethod
    async def list_active_emergency_alerts(self) -> list[EmergencyAlert]: ...

    @abstractmethod
    async def get_emergency_alert(self, alert_id: int) -> Optional[EmergencyAlert]: ...

    @abstractmethod
    async def create_emergency_alert(self, alert: EmergencyAlert) -> EmergencyAlert: ...

    @abstractmethod
    async def resolve_emergency_alert(self, alert_id: int) -> Optional[EmergencyAlert]:
        """Mark an alert resolved; raises ``InvalidStateTransition`` if it already is."""


class MemoryStorage(Storage):
    """
    Dict-backed storage.

    Ids come from per-table counters owned by the instance.  Every read
    returns a copy, so callers can never mutate stored records in place.
    No method awaits between reading and writing, which makes each call
    atomic on a single event loop.
    """

    def __init__(self):
        self._users: dict[int, User] = {}
        self._rides: dict[int, Ride] = {}
        self._bookings: dict[int, Booking] = {}
        self._messages: dict[int, Message] = {}
        self._reviews: dict[int, Review] = {}
        self._contacts: dict[int, EmergencyContact] = {}
        self._alerts: dict[int, EmergencyAlert] = {}
        self._ids: defaultdict[str, itertools.count] = defaultdict(
            lambda: itertools.count(1)
        )

    def _next_id(self, table: str) -> int:
        return next(self._ids[table])

    # ── Users ─────────────────────────────────────────────────────────

    async def get_user(self, user_id: int) -> Optional[User]:
        user = self._users.get(user_id)
        return replace(user) if user else None

    async def get_user_by_username(self, username: str) -> Optional[User]:
        wanted = username.lower()
        for user in self._users.values():
            if user.username.lower() == wanted:
                return replace(user)
        return None

    async def get_user_by_email(self, email: str) -> Optional[User]:
        wanted = email.lower()
        for user in self._users.values():
            if user.email.lower() == wanted:
                return replace(user)
        return None

    async def create_user(self, user: User) -> User:
        stored = replace(
            user, id=self._next_id("users"), created_at=utcnow(), rating=0.0, review_count=0
        )
        self._users[stored.id] = stored
        return replace(stored)

    async def update_user(self, user_id: int, **fields) -> Optional[User]:
        user = self._users.get(user_id)
        if user is None:
            return None
        self._users[user_id] = replace(user, **fields)
        return replace(self._users[user_id])

    # ── Rides ─────────────────────────────────────────────────────────

    def _snapshot(self, ride: Ride) -> Ride:
        held = seats_held(
            b.status for b in self._bookings.values() if b.ride_id == ride.id
        )
        return replace(
            ride, available_seats=available_seats(ride.seat_capacity, held)
        )

    def _sorted_rides(self, rides) -> list[Ride]:
        return [
            self._snapshot(r)
            for r in sorted(rides, key=lambda r: (r.departure_time, r.id))
        ]

    async def get_ride(
        self, ride_id: int, *, for_update: bool = False
    ) -> Optional[Ride]:
        ride = self._rides.get(ride_id)
        return self._snapshot(ride) if ride else None

    async def list_active_rides(self) -> list[Ride]:
        return self._sorted_rides(
            r for r in self._rides.values() if r.status == RideStatus.ACTIVE
        )

    async def list_rides_by_driver(self, driver_id: int) -> list[Ride]:
        return self._sorted_rides(
            r for r in self._rides.values() if r.driver_id == driver_id
        )

    async def list_rides_by_university(self, university: str) -> list[Ride]:
        drivers = {
            u.id
            for u in self._users.values()
            if u.university == university and u.is_driver
        }
        return self._sorted_rides(
            r
            for r in self._rides.values()
            if r.driver_id in drivers and r.status == RideStatus.ACTIVE
        )

    async def create_ride(self, ride: Ride) -> Ride:
        stored = replace(ride, id=self._next_id("rides"), created_at=utcnow())
        self._rides[stored.id] = stored
        return self._snapshot(stored)

    async def update_ride(self, ride_id: int, **fields) -> Optional[Ride]:
        ride = self._rides.get(ride_id)
        if ride is None:
            return None
        self._rides[ride_id] = replace(ride, **fields)
        return self._snapshot(self._rides[ride_id])

    # ── Bookings ──────────────────────────────────────────────────────

    async def get_booking(
        self, booking_id: int, *, for_update: bool = False
    ) -> Optional[Booking]:
        booking = self._bookings.get(booking_id)
        return replace(booking) if booking else None

    async def list_bookings_by_ride(self, ride_id: int) -> list[Booking]:
        return [replace(b) for b in self._bookings.values() if b.ride_id == ride_id]

    async def list_bookings_by_passenger(self, passenger_id: int) -> list[Booking]:
        return [
            replace(b) for b in self._bookings.values() if b.passenger_id == passenger_id
        ]

    async def create_booking(self, ride_id: int, passenger_id: int) -> Booking:
        booking = Booking(
            id=self._next_id("bookings"),
            ride_id=ride_id,
            passenger_id=passenger_id,
            status=BookingStatus.PENDING,
            created_at=utcnow(),
        )
        self._bookings[booking.id] = booking
        return replace(booking)

    async def update_booking_status(
        self, booking_id: int, status: BookingStatus
    ) -> Optional[Booking]:
        booking = self._bookings.get(booking_id)
        if booking is None:
            return None
        self._bookings[booking_id] = replace(booking, status=status)
        return replace(self._bookings[booking_id])

    async def delete_booking(self, booking_id: int) -> bool:
        return self._bookings.pop(booking_id, None) is not None

    async def cancel_open_bookings(self, ride_id: int) -> int:
        changed = 0
        for booking_id, booking in self._bookings.items():
            if booking.ride_id == ride_id and booking.status in OPEN_BOOKING_STATUSES:
                self._bookings[booking_id] = replace(
                    booking, status=BookingStatus.CANCELLED
                )
                changed += 1
        return changed

    # ── Messages ──────────────────────────────────────────────────────

    async def get_message(self, message_id: int) -> Optional[Message]:
        message = self._messages.get(message_id)
        return replace(message) if message else None

    async def list_messages_between(
        self, user_a: int, user_b: int, after_id: Optional[int] = None
    ) -> list[Message]:
        pair = {user_a, user_b}
        return [
            replace(m)
            for m in sorted(self._messages.values(), key=lambda m: (m.created_at, m.id))
            if {m.sender_id, m.receiver_id} == pair
            and (after_id is None or m.id > after_id)
        ]

    async def list_user_messages(self, user_id: int) -> list[Message]:
        return [
            replace(m)
            for m in sorted(self._messages.values(), key=lambda m: (m.created_at, m.id))
            if user_id in (m.sender_id, m.receiver_id)
        ]

    async def create_message(
        self, sender_id: int, receiver_id: int, content: str
    ) -> Message:
        message = Message(
            id=self._next_id("messages"),
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            read=False,
            created_at=utcnow(),
        )
        self._messages[message.id] = message
        return replace(message)

    async def mark_message_read(self, message_id: int) -> bool:
        message = self._messages.get(message_id)
        if message is None:
            return False
        self._messages[message_id] = replace(message, read=True)
        return True

    # ── Reviews ───────────────────────────────────────────────────────

    async def list_reviews_for(self, reviewee_id: int) -> list[Review]:
        return [
            replace(r) for r in self._reviews.values() if r.reviewee_id == reviewee_id
        ]

    async def create_review(self, review: Review) -> Review:
        stored = replace(review, id=self._next_id("reviews"), created_at=utcnow())
        self._reviews[stored.id] = stored

        reviewee = self._users.get(stored.reviewee_id)
        if reviewee is not None:
            rating, count = aggregate_rating(
                r.rating for r in self._reviews.values()
                if r.reviewee_id == reviewee.id
            )
            self._users[reviewee.id] = replace(
                reviewee, rating=rating, review_count=count
            )
        return replace(stored)

    # ── Emergency ─────────────────────────────────────────────────────

    async def list_emergency_contacts(self, user_id: int) -> list[EmergencyContact]:
        return [replace(c) for c in self._contacts.values() if c.user_id == user_id]

    async def get_emergency_contact(self, contact_id: int) -> Optional[EmergencyContact]:
        contact = self._contacts.get(contact_id)
        return replace(contact) if contact else None

    async def create_emergency_contact(
        self, contact: EmergencyContact
    ) -> EmergencyContact:
        stored = replace(contact, id=self._next_id("contacts"), created_at=utcnow())
        self._contacts[stored.id] = stored
        return replace(stored)

    async def update_emergency_contact(
        self, contact_id: int, **fields
    ) -> Optional[EmergencyContact]:
        contact = self._contacts.get(contact_id)
        if contact is None:
            return None
        self._contacts[contact_id] = replace(contact, **fields)
        return replace(self._contacts[contact_id])

    async def delete_emergency_contact(self, contact_id: int) -> bool:
        return self._contacts.pop(contact_id, None) is not None

    async def list_emergency_alerts(self, user_id: int) -> list[EmergencyAlert]:
        return [replace(a) for a in self._alerts.values() if a.user_id == user_id]

    async def list_active_emergency_alerts(self) -> list[EmergencyAlert]:
        return [
            replace(a) for a in self._alerts.values() if a.status == AlertStatus.ACTIVE
        ]

    async def get_emergency_alert(self, alert_id: int) -> Optional[EmergencyAlert]:
        alert = self._alerts.get(alert_id)
        return replace(alert) if alert else None

    async def create_emergency_alert(self, alert: EmergencyAlert) -> EmergencyAlert:
        stored = replace(
            alert,
            id=self._next_id("alerts"),
            status=AlertStatus.ACTIVE,
            resolved_at=None,
            created_at=utcnow(),
        )
        self._alerts[stored.id] = stored
        return replace(stored)

    async def resolve_emergency_alert(self, alert_id: int) -> Optional[EmergencyAlert]:
        alert = self._alerts.get(alert_id)
        if alert is None:
            return None
        resolved = replace(alert)
        resolved.resolve()
        self._alerts[alert_id] = resolved
        return replace(resolved)
