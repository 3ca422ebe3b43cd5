"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

``SqlStorage`` receives an ``AsyncSession`` (unit-of-work) and implements
the ``Storage`` interface on top of it.  Writes are flushed, not
committed; the request dependency commits or rolls back the whole unit.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    BookingModel,
    EmergencyAlertModel,
    EmergencyContactModel,
    MessageModel,
    ReviewModel,
    RideModel,
    UserModel,
)
from .storage import Storage
from campuspool.domain.entities import (
    Booking,
    EmergencyAlert,
    EmergencyContact,
    Message,
    Review,
    Ride,
    User,
)
from campuspool.domain.enums import (
    OPEN_BOOKING_STATUSES,
    SEAT_HOLDING_STATUSES,
    AlertStatus,
    BookingStatus,
    RideStatus,
)
from campuspool.domain.ratings import aggregate_rating


def _seats_held_subquery():
    """Correlated ``count(*)`` of seat-holding bookings for ``RideModel``."""
    return (
        select(func.count(BookingModel.id))
        .where(
            BookingModel.ride_id == RideModel.id,
            BookingModel.status.in_(list(SEAT_HOLDING_STATUSES)),
        )
        .correlate(RideModel)
        .scalar_subquery()
    )


class SqlStorage(Storage):
    def __init__(self, session: AsyncSession):
        self.session = session

    # ── Users ─────────────────────────────────────────────────────────

    async def get_user(self, user_id: int) -> Optional[User]:
        model = await self.session.get(UserModel, user_id)
        return model.to_entity() if model else None

    async def get_user_by_username(self, username: str) -> Optional[User]:
        result = await self.session.execute(
            select(UserModel).where(
                func.lower(UserModel.username) == username.lower()
            )
        )
        model = result.scalar_one_or_none()
        return model.to_entity() if model else None

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.session.execute(
            select(UserModel).where(func.lower(UserModel.email) == email.lower())
        )
        model = result.scalar_one_or_none()
        return model.to_entity() if model else None

    async def create_user(self, user: User) -> User:
        model = UserModel(
            username=user.username,
            password_hash=user.password_hash,
            full_name=user.full_name,
            email=user.email,
            phone=user.phone,
            university=user.university,
            profile_image=user.profile_image,
            bio=user.bio,
            rating=0.0,
            review_count=0,
            is_driver=user.is_driver,
            car_model=user.car_model,
            license_plate=user.license_plate,
            is_admin=user.is_admin,
        )
        self.session.add(model)
        await self.session.flush()
        return model.to_entity()

    async def update_user(self, user_id: int, **fields) -> Optional[User]:
        model = await self.session.get(UserModel, user_id)
        if model is None:
            return None
        for name, value in fields.items():
            setattr(model, name, value)
        await self.session.flush()
        return model.to_entity()

    # ── Rides ─────────────────────────────────────────────────────────

    async def _seats_held(self, ride_id: int) -> int:
        result = await self.session.execute(
            select(func.count(BookingModel.id)).where(
                BookingModel.ride_id == ride_id,
                BookingModel.status.in_(list(SEAT_HOLDING_STATUSES)),
            )
        )
        return result.scalar() or 0

    async def _ride_entity(self, model: RideModel) -> Ride:
        return model.to_entity(await self._seats_held(model.id))

    async def _list_rides(self, *criteria) -> list[Ride]:
        result = await self.session.execute(
            select(RideModel, _seats_held_subquery())
            .where(*criteria)
            .order_by(RideModel.departure_time, RideModel.id)
        )
        return [model.to_entity(held or 0) for model, held in result.all()]

    async def get_ride(
        self, ride_id: int, *, for_update: bool = False
    ) -> Optional[Ride]:
        query = select(RideModel).where(RideModel.id == ride_id)
        if for_update:
            # SELECT ... FOR UPDATE serialises concurrent bookings on one ride
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(query)
        model = result.scalar_one_or_none()
        return await self._ride_entity(model) if model else None

    async def list_active_rides(self) -> list[Ride]:
        return await self._list_rides(RideModel.status == RideStatus.ACTIVE)

    async def list_rides_by_driver(self, driver_id: int) -> list[Ride]:
        return await self._list_rides(RideModel.driver_id == driver_id)

    async def list_rides_by_university(self, university: str) -> list[Ride]:
        drivers = select(UserModel.id).where(
            UserModel.university == university,
            UserModel.is_driver.is_(True),
        )
        return await self._list_rides(
            RideModel.status == RideStatus.ACTIVE,
            RideModel.driver_id.in_(drivers),
        )

    async def create_ride(self, ride: Ride) -> Ride:
        model = RideModel(
            driver_id=ride.driver_id,
            origin=ride.origin,
            destination=ride.destination,
            departure_time=ride.departure_time,
            price=ride.price,
            seat_capacity=ride.seat_capacity,
            description=ride.description,
            recurring=ride.recurring,
            recurring_days=ride.recurring_days,
            status=ride.status,
        )
        self.session.add(model)
        await self.session.flush()
        return model.to_entity(0)

    async def update_ride(self, ride_id: int, **fields) -> Optional[Ride]:
        model = await self.session.get(RideModel, ride_id)
        if model is None:
            return None
        for name, value in fields.items():
            setattr(model, name, value)
        await self.session.flush()
        return await self._ride_entity(model)

    # ── Bookings ──────────────────────────────────────────────────────

    async def get_booking(
        self, booking_id: int, *, for_update: bool = False
    ) -> Optional[Booking]:
        if not for_update:
            model = await self.session.get(BookingModel, booking_id)
            return model.to_entity() if model else None
        # Refresh the identity map too: the row may have changed while we waited
        result = await self.session.execute(
            select(BookingModel)
            .where(BookingModel.id == booking_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return model.to_entity() if model else None

    async def list_bookings_by_ride(self, ride_id: int) -> list[Booking]:
        result = await self.session.execute(
            select(BookingModel)
            .where(BookingModel.ride_id == ride_id)
            .order_by(BookingModel.id)
        )
        return [m.to_entity() for m in result.scalars().all()]

    async def list_bookings_by_passenger(self, passenger_id: int) -> list[Booking]:
        result = await self.session.execute(
            select(BookingModel)
            .where(BookingModel.passenger_id == passenger_id)
            .order_by(BookingModel.id)
        )
        return [m.to_entity() for m in result.scalars().all()]

    async def create_booking(self, ride_id: int, passenger_id: int) -> Booking:
        model = BookingModel(
            ride_id=ride_id,
            passenger_id=passenger_id,
            status=BookingStatus.PENDING,
        )
        self.session.add(model)
        await self.session.flush()
        return model.to_entity()

    async def update_booking_status(
        self, booking_id: int, status: BookingStatus
    ) -> Optional[Booking]:
        model = await self.session.get(BookingModel, booking_id)
        if model is None:
            return None
        model.status = status
        await self.session.flush()
        return model.to_entity()

    async def delete_booking(self, booking_id: int) -> bool:
        model = await self.session.get(BookingModel, booking_id)
        if model is None:
            return False
        await self.session.delete(model)
        await self.session.flush()
        return True

    async def cancel_open_bookings(self, ride_id: int) -> int:
        result = await self.session.execute(
            select(BookingModel).where(
                BookingModel.ride_id == ride_id,
                BookingModel.status.in_(list(OPEN_BOOKING_STATUSES)),
            )
        )
        models = result.scalars().all()
        for model in models:
            model.status = BookingStatus.CANCELLED
        await self.session.flush()
        return len(models)

    # ── Messages ──────────────────────────────────────────────────────

    async def get_message(self, message_id: int) -> Optional[Message]:
        model = await self.session.get(MessageModel, message_id)
        return model.to_entity() if model else None

    async def list_messages_between(
        self, user_a: int, user_b: int, after_id: Optional[int] = None
    ) -> list[Message]:
        query = select(MessageModel).where(
            or_(
                and_(MessageModel.sender_id == user_a, MessageModel.receiver_id == user_b),
                and_(MessageModel.sender_id == user_b, MessageModel.receiver_id == user_a),
            )
        )
        if after_id is not None:
            query = query.where(MessageModel.id > after_id)
        result = await self.session.execute(
            query.order_by(MessageModel.created_at, MessageModel.id)
        )
        return [m.to_entity() for m in result.scalars().all()]

    async def list_user_messages(self, user_id: int) -> list[Message]:
        result = await self.session.execute(
            select(MessageModel)
            .where(
                or_(MessageModel.sender_id == user_id, MessageModel.receiver_id == user_id)
            )
            .order_by(MessageModel.created_at, MessageModel.id)
        )
        return [m.to_entity() for m in result.scalars().all()]

    async def create_message(
        self, sender_id: int, receiver_id: int, content: str
    ) -> Message:
        model = MessageModel(
            sender_id=sender_id, receiver_id=receiver_id, content=content, read=False
        )
        self.session.add(model)
        await self.session.flush()
        return model.to_entity()

    async def mark_message_read(self, message_id: int) -> bool:
        model = await self.session.get(MessageModel, message_id)
        if model is None:
            return False
        model.read = True
        await self.session.flush()
        return True

    # ── Reviews ───────────────────────────────────────────────────────

    async def list_reviews_for(self, reviewee_id: int) -> list[Review]:
        result = await self.session.execute(
            select(ReviewModel)
            .where(ReviewModel.reviewee_id == reviewee_id)
            .order_by(ReviewModel.id)
        )
        return [m.to_entity() for m in result.scalars().all()]

    async def create_review(self, review: Review) -> Review:
        model = ReviewModel(
            reviewer_id=review.reviewer_id,
            reviewee_id=review.reviewee_id,
            ride_id=review.ride_id,
            rating=review.rating,
            comment=review.comment,
        )
        self.session.add(model)
        await self.session.flush()

        reviewee = await self.session.get(UserModel, review.reviewee_id)
        if reviewee is not None:
            result = await self.session.execute(
                select(ReviewModel.rating).where(
                    ReviewModel.reviewee_id == reviewee.id
                )
            )
            reviewee.rating, reviewee.review_count = aggregate_rating(
                result.scalars().all()
            )
            await self.session.flush()
        return model.to_entity()

    # ── Emergency ─────────────────────────────────────────────────────

    async def list_emergency_contacts(self, user_id: int) -> list[EmergencyContact]:
        result = await self.session.execute(
            select(EmergencyContactModel)
            .where(EmergencyContactModel.user_id == user_id)
            .order_by(EmergencyContactModel.id)
        )
        return [m.to_entity() for m in result.scalars().all()]

    async def get_emergency_contact(self, contact_id: int) -> Optional[EmergencyContact]:
        model = await self.session.get(EmergencyContactModel, contact_id)
        return model.to_entity() if model else None

    async def create_emergency_contact(
        self, contact: EmergencyContact
    ) -> EmergencyContact:
        model = EmergencyContactModel(
            user_id=contact.user_id,
            name=contact.name,
            relationship=contact.relationship,
            phone=contact.phone,
            email=contact.email,
        )
        self.session.add(model)
        await self.session.flush()
        return model.to_entity()

    async def update_emergency_contact(
        self, contact_id: int, **fields
    ) -> Optional[EmergencyContact]:
        model = await self.session.get(EmergencyContactModel, contact_id)
        if model is None:
            return None
        for name, value in fields.items():
            setattr(model, name, value)
        await self.session.flush()
        return model.to_entity()

    async def delete_emergency_contact(self, contact_id: int) -> bool:
        model = await self.session.get(EmergencyContactModel, contact_id)
        if model is None:
            return False
        await self.session.delete(model)
        await self.session.flush()
        return True

    async def list_emergency_alerts(self, user_id: int) -> list[EmergencyAlert]:
        result = await self.session.execute(
            select(EmergencyAlertModel)
            .where(EmergencyAlertModel.user_id == user_id)
            .order_by(EmergencyAlertModel.id)
        )
        return [m.to_entity() for m in result.scalars().all()]

    async def list_active_emergency_alerts(self) -> list[EmergencyAlert]:
        result = await self.session.execute(
            select(EmergencyAlertModel)
            .where(EmergencyAlertModel.status == AlertStatus.ACTIVE)
            .order_by(EmergencyAlertModel.created_at)
        )
        return [m.to_entity() for m in result.scalars().all()]

    async def get_emergency_alert(self, alert_id: int) -> Optional[EmergencyAlert]:
        model = await self.session.get(EmergencyAlertModel, alert_id)
        return model.to_entity() if model else None

    async def create_emergency_alert(self, alert: EmergencyAlert) -> EmergencyAlert:
        model = EmergencyAlertModel(
            user_id=alert.user_id,
            ride_id=alert.ride_id,
            type=alert.type,
            description=alert.description,
            latitude=alert.latitude,
            longitude=alert.longitude,
            status=AlertStatus.ACTIVE,
        )
        self.session.add(model)
        await self.session.flush()
        return model.to_entity()

    async def resolve_emergency_alert(self, alert_id: int) -> Optional[EmergencyAlert]:
        model = await self.session.get(EmergencyAlertModel, alert_id)
        if model is None:
            return None
        alert = model.to_entity()
        alert.resolve()
        model.status = alert.status
        model.resolved_at = alert.resolved_at
        await self.session.flush()
        return model.to_entity()
