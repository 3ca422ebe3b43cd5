"""Domain enumerations and state-transition rules."""

import enum


class RideStatus(str, enum.Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class AlertType(str, enum.Enum):
    MEDICAL = "medical"
    SAFETY = "safety"
    ACCIDENT = "accident"
    OTHER = "other"


class AlertStatus(str, enum.Enum):
    ACTIVE = "active"
    RESOLVED = "resolved"


# State machines: map current status -> set of valid next statuses
RIDE_TRANSITIONS: dict[RideStatus, set[RideStatus]] = {
    RideStatus.ACTIVE: {RideStatus.CANCELLED},
    RideStatus.CANCELLED: set(),
}

BOOKING_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.CANCELLED, BookingStatus.COMPLETED},
    BookingStatus.CANCELLED: set(),
    BookingStatus.COMPLETED: set(),
}

ALERT_TRANSITIONS: dict[AlertStatus, set[AlertStatus]] = {
    AlertStatus.ACTIVE: {AlertStatus.RESOLVED},
    AlertStatus.RESOLVED: set(),
}

# Bookings in these states occupy a seat on their ride
SEAT_HOLDING_STATUSES: frozenset[BookingStatus] = frozenset(
    {BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.COMPLETED}
)

# Bookings a ride cancellation cascades to
OPEN_BOOKING_STATUSES: frozenset[BookingStatus] = frozenset(
    {BookingStatus.PENDING, BookingStatus.CONFIRMED}
)

UNIVERSITIES: list[str] = [
    "Mapúa Malayan Colleges Laguna (MMCL)",
    "De La Salle University (DLSU)",
    "University of Santo Tomas (UST)",
    "Far Eastern University Alabang (FEU Alabang)",
    "National University Laguna (NU Laguna)",
    "San Beda College Alabang (SBCA)",
]
