"""
Pydantic request / response schemas for the REST API.

Field names are snake_case in Python and camelCase on the wire
(``departureTime``, ``availableSeats``); snake_case input is accepted too.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from campuspool.domain.enums import (
    AlertStatus,
    AlertType,
    BookingStatus,
    RideStatus,
)


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # naive timestamps from clients are taken as UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ── Requests ──────────────────────────────────────────────────────────


class RegisterRequest(ApiModel):
    username: str = Field(..., min_length=3, max_length=64)
    password: str = Field(
        ..., min_length=6, description="Must be at least 6 characters."
    )
    full_name: str = Field(..., min_length=1, max_length=120)
    email: EmailStr
    university: str = Field(..., min_length=1, max_length=120)
    phone: Optional[str] = Field(None, max_length=32)
    profile_image: Optional[str] = None
    bio: Optional[str] = None
    is_driver: bool = False
    car_model: Optional[str] = Field(None, max_length=120)
    license_plate: Optional[str] = Field(None, max_length=32)


class LoginRequest(ApiModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class ProfileUpdateRequest(ApiModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=120)
    phone: Optional[str] = Field(None, max_length=32)
    university: Optional[str] = Field(None, min_length=1, max_length=120)
    profile_image: Optional[str] = None
    bio: Optional[str] = None
    is_driver: Optional[bool] = None
    car_model: Optional[str] = Field(None, max_length=120)
    license_plate: Optional[str] = Field(None, max_length=32)


class RideCreateRequest(ApiModel):
    origin: str = Field(..., min_length=1, max_length=255)
    destination: str = Field(..., min_length=1, max_length=255)
    departure_time: datetime
    price: int = Field(..., ge=0)
    available_seats: int = Field(..., ge=1, le=8)
    description: Optional[str] = None
    recurring: bool = False
    recurring_days: Optional[str] = Field(None, max_length=64)
    driver_id: Optional[int] = Field(
        None, description="Optional; must match the authenticated driver."
    )

    @field_validator("departure_time")
    @classmethod
    def departure_as_utc(cls, value):
        return _as_utc(value)


class RideUpdateRequest(ApiModel):
    origin: Optional[str] = Field(None, min_length=1, max_length=255)
    destination: Optional[str] = Field(None, min_length=1, max_length=255)
    departure_time: Optional[datetime] = None
    price: Optional[int] = Field(None, ge=0)
    available_seats: Optional[int] = Field(
        None,
        ge=0,
        le=8,
        description="Open seats wanted; capacity becomes this plus seats already held.",
    )
    description: Optional[str] = None
    recurring: Optional[bool] = None
    recurring_days: Optional[str] = Field(None, max_length=64)
    status: Optional[RideStatus] = None

    @field_validator("departure_time")
    @classmethod
    def departure_as_utc(cls, value):
        return _as_utc(value)


class BookingCreateRequest(ApiModel):
    ride_id: int


class BookingStatusRequest(ApiModel):
    status: BookingStatus


class MessageCreateRequest(ApiModel):
    receiver_id: int
    content: str = Field(..., min_length=1, max_length=2000)


class ReviewCreateRequest(ApiModel):
    reviewee_id: int
    ride_id: int
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)


class EmergencyContactRequest(ApiModel):
    name: str = Field(..., min_length=1, max_length=120)
    relationship: str = Field(..., min_length=1, max_length=64)
    phone: str = Field(..., min_length=1, max_length=32)
    email: Optional[EmailStr] = None


class EmergencyContactUpdateRequest(ApiModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    relationship: Optional[str] = Field(None, min_length=1, max_length=64)
    phone: Optional[str] = Field(None, min_length=1, max_length=32)
    email: Optional[EmailStr] = None


class EmergencyAlertCreateRequest(ApiModel):
    ride_id: int
    type: AlertType
    description: Optional[str] = Field(None, max_length=2000)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


# ── Responses ─────────────────────────────────────────────────────────


class UserResponse(ApiModel):
    id: int
    username: str
    full_name: str
    email: str
    university: str
    phone: Optional[str] = None
    profile_image: Optional[str] = None
    bio: Optional[str] = None
    rating: float = 0.0
    review_count: int = 0
    is_driver: bool = False
    car_model: Optional[str] = None
    license_plate: Optional[str] = None
    created_at: Optional[datetime] = None


class AuthResponse(ApiModel):
    token: str
    user: UserResponse


class DriverSummary(ApiModel):
    id: int
    full_name: str
    rating: float = 0.0
    review_count: int = 0
    profile_image: Optional[str] = None
    university: str


class RideResponse(ApiModel):
    id: int
    driver_id: int
    origin: str
    destination: str
    departure_time: datetime
    price: int
    seat_capacity: int
    available_seats: int
    description: Optional[str] = None
    recurring: bool = False
    recurring_days: Optional[str] = None
    status: RideStatus
    created_at: Optional[datetime] = None


class RideWithDriverResponse(RideResponse):
    driver: Optional[DriverSummary] = None


class BookingResponse(ApiModel):
    id: int
    ride_id: int
    passenger_id: int
    status: BookingStatus
    created_at: Optional[datetime] = None


class BookingWithRideResponse(BookingResponse):
    ride: Optional[RideWithDriverResponse] = None


class MessageResponse(ApiModel):
    id: int
    sender_id: int
    receiver_id: int
    content: str
    read: bool = False
    created_at: Optional[datetime] = None


class ConversationResponse(ApiModel):
    user_id: int
    user: UserResponse
    messages: list[MessageResponse] = []
    last_message: Optional[MessageResponse] = None
    unread_count: int = 0


class ReviewResponse(ApiModel):
    id: int
    reviewer_id: int
    reviewee_id: int
    ride_id: int
    rating: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None


class EmergencyContactResponse(ApiModel):
    id: int
    user_id: int
    name: str
    relationship: str
    phone: str
    email: Optional[str] = None
    created_at: Optional[datetime] = None


class EmergencyAlertResponse(ApiModel):
    id: int
    user_id: int
    ride_id: int
    type: AlertType
    description: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    status: AlertStatus
    resolved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class HealthResponse(ApiModel):
    status: str = "ok"


class ErrorResponse(ApiModel):
    detail: str
