"""
Seat accounting.

The open-seat count of a ride is always re-derived from booking state::

    available = max(0, capacity - held)

where *held* counts bookings whose status is in ``SEAT_HOLDING_STATUSES``
(pending, confirmed, completed).  A pending request therefore reserves
its seat at creation time, confirming it does not take a second seat,
and cancelling or deleting it gives the seat back.
"""

from typing import Iterable

from .enums import SEAT_HOLDING_STATUSES, BookingStatus


def holds_seat(status: BookingStatus) -> bool:
    return BookingStatus(status) in SEAT_HOLDING_STATUSES


def seats_held(statuses: Iterable[BookingStatus]) -> int:
    """Number of seats occupied by bookings with the given statuses."""
    return sum(1 for s in statuses if holds_seat(s))


def available_seats(capacity: int, held: int) -> int:
    return max(0, capacity - held)


def capacity_for(open_seats: int, held: int) -> int:
    """Capacity needed so that *open_seats* remain on top of *held*."""
    return max(0, open_seats) + held
