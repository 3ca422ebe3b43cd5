"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``users``              -- students, drivers and passengers alike
* ``rides``              -- driver-posted trips; stores seat *capacity* only
* ``bookings``           -- one passenger seat request on a ride
* ``messages``           -- direct messages between users
* ``reviews``            -- post-ride ratings
* ``emergency_contacts`` -- per-user contacts
* ``emergency_alerts``   -- distress records tied to a ride

Indexes
-------
* **B-Tree** on foreign-key columns and on ``status`` columns, used by the
  active-ride listing, the seat count and the cascade on ride cancellation.
* Unique on ``users.username`` / ``users.email``.
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)

from .database import Base
from campuspool.domain import entities
from campuspool.domain.enums import AlertStatus, AlertType, BookingStatus, RideStatus
from campuspool.domain.seats import available_seats


def _enum(enum_cls, name: str) -> Enum:
    # Persist the lowercase values ("active"), not the member names
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
    )


def _created_at() -> Column:
    return Column(
        DateTime(timezone=True),
        default=entities.utcnow,
        server_default=func.now(),
        nullable=False,
    )


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(64), unique=True, nullable=False)
    password_hash = Column(String(128), nullable=False)
    full_name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    phone = Column(String(32), nullable=True)
    university = Column(String(120), nullable=False)
    profile_image = Column(Text, nullable=True)
    bio = Column(Text, nullable=True)
    rating = Column(Float, default=0.0, nullable=False)
    review_count = Column(Integer, default=0, nullable=False)
    is_driver = Column(Boolean, default=False, nullable=False)
    car_model = Column(String(120), nullable=True)
    license_plate = Column(String(32), nullable=True)
    is_admin = Column(Boolean, default=False, nullable=False)
    created_at = _created_at()

    __table_args__ = (Index("idx_users_university", "university"),)

    def to_entity(self) -> entities.User:
        return entities.User(
            id=self.id,
            username=self.username,
            password_hash=self.password_hash,
            full_name=self.full_name,
            email=self.email,
            phone=self.phone,
            university=self.university,
            profile_image=self.profile_image,
            bio=self.bio,
            rating=self.rating or 0.0,
            review_count=self.review_count or 0,
            is_driver=bool(self.is_driver),
            car_model=self.car_model,
            license_plate=self.license_plate,
            is_admin=bool(self.is_admin),
            created_at=self.created_at,
        )


class RideModel(Base):
    __tablename__ = "rides"

    id = Column(Integer, primary_key=True, autoincrement=True)
    driver_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    origin = Column(String(255), nullable=False)
    destination = Column(String(255), nullable=False)
    departure_time = Column(DateTime(timezone=True), nullable=False)
    price = Column(Integer, nullable=False)
    seat_capacity = Column(Integer, nullable=False)
    description = Column(Text, nullable=True)
    recurring = Column(Boolean, default=False, nullable=False)
    recurring_days = Column(String(64), nullable=True)
    status = Column(
        _enum(RideStatus, "ridestatus"), default=RideStatus.ACTIVE, nullable=False
    )
    created_at = _created_at()

    __table_args__ = (
        Index("idx_rides_driver", "driver_id"),
        Index("idx_rides_status", "status"),
        Index("idx_rides_departure", "departure_time"),
    )

    def to_entity(self, held: int) -> entities.Ride:
        return entities.Ride(
            id=self.id,
            driver_id=self.driver_id,
            origin=self.origin,
            destination=self.destination,
            departure_time=self.departure_time,
            price=self.price,
            seat_capacity=self.seat_capacity,
            available_seats=available_seats(self.seat_capacity, held),
            description=self.description,
            recurring=bool(self.recurring),
            recurring_days=self.recurring_days,
            status=RideStatus(self.status),
            created_at=self.created_at,
        )


class BookingModel(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ride_id = Column(Integer, ForeignKey("rides.id"), nullable=False)
    passenger_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    status = Column(
        _enum(BookingStatus, "bookingstatus"),
        default=BookingStatus.PENDING,
        nullable=False,
    )
    created_at = _created_at()

    __table_args__ = (
        Index("idx_bookings_ride_status", "ride_id", "status"),
        Index("idx_bookings_passenger", "passenger_id"),
    )

    def to_entity(self) -> entities.Booking:
        return entities.Booking(
            id=self.id,
            ride_id=self.ride_id,
            passenger_id=self.passenger_id,
            status=BookingStatus(self.status),
            created_at=self.created_at,
        )


class MessageModel(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    receiver_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    read = Column(Boolean, default=False, nullable=False)
    created_at = _created_at()

    __table_args__ = (
        Index("idx_messages_sender", "sender_id"),
        Index("idx_messages_receiver", "receiver_id"),
    )

    def to_entity(self) -> entities.Message:
        return entities.Message(
            id=self.id,
            sender_id=self.sender_id,
            receiver_id=self.receiver_id,
            content=self.content,
            read=bool(self.read),
            created_at=self.created_at,
        )


class ReviewModel(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reviewer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    reviewee_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    ride_id = Column(Integer, ForeignKey("rides.id"), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = _created_at()

    __table_args__ = (Index("idx_reviews_reviewee", "reviewee_id"),)

    def to_entity(self) -> entities.Review:
        return entities.Review(
            id=self.id,
            reviewer_id=self.reviewer_id,
            reviewee_id=self.reviewee_id,
            ride_id=self.ride_id,
            rating=self.rating,
            comment=self.comment,
            created_at=self.created_at,
        )


class EmergencyContactModel(Base):
    __tablename__ = "emergency_contacts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    name = Column(String(120), nullable=False)
    relationship = Column(String(64), nullable=False)
    phone = Column(String(32), nullable=False)
    email = Column(String(255), nullable=True)
    created_at = _created_at()

    __table_args__ = (Index("idx_emergency_contacts_user", "user_id"),)

    def to_entity(self) -> entities.EmergencyContact:
        return entities.EmergencyContact(
            id=self.id,
            user_id=self.user_id,
            name=self.name,
            relationship=self.relationship,
            phone=self.phone,
            email=self.email,
            created_at=self.created_at,
        )


class EmergencyAlertModel(Base):
    __tablename__ = "emergency_alerts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    ride_id = Column(Integer, ForeignKey("rides.id"), nullable=False)
    type = Column(_enum(AlertType, "alerttype"), nullable=False)
    description = Column(Text, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    status = Column(
        _enum(AlertStatus, "alertstatus"), default=AlertStatus.ACTIVE, nullable=False
    )
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = _created_at()

    __table_args__ = (
        Index("idx_emergency_alerts_user", "user_id"),
        Index("idx_emergency_alerts_status", "status"),
    )

    def to_entity(self) -> entities.EmergencyAlert:
        return entities.EmergencyAlert(
            id=self.id,
            user_id=self.user_id,
            ride_id=self.ride_id,
            type=AlertType(self.type),
            description=self.description,
            latitude=self.latitude,
            longitude=self.longitude,
            status=AlertStatus(self.status),
            resolved_at=self.resolved_at,
            created_at=self.created_at,
        )
