"""The seed script runs through the storage interface on either backend."""

import pytest

import seed
from campuspool.domain.enums import BookingStatus


class TestSeed:
    @pytest.mark.asyncio
    async def test_seed_populates_storage(self, storage):
        counts = await seed.seed(storage)
        assert counts == {"users": 6, "rides": 6, "bookings": 2, "contacts": 1}

        juan = await storage.get_user_by_username("juan")
        assert juan.is_driver
        admin = await storage.get_user_by_username("admin")
        assert admin.is_admin

        rides = await storage.list_active_rides()
        assert len(rides) == 6
        first = next(r for r in rides if r.origin == "Taft Avenue, Manila")
        assert first.available_seats == first.seat_capacity - 1

        carlo = await storage.get_user_by_username("carlo")
        statuses = {b.status for b in await storage.list_bookings_by_passenger(carlo.id)}
        assert statuses == {BookingStatus.PENDING, BookingStatus.CONFIRMED}

    @pytest.mark.asyncio
    async def test_seed_is_idempotent(self, storage):
        await seed.seed(storage)
        assert await seed.seed(storage) == {}
