"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 6 sample users (4 drivers, 1 passenger, 1 admin), password ``password123``
  - 6 sample rides between Metro Manila campuses
  - 2 sample bookings (one pending, one confirmed)
  - 1 emergency contact for the passenger
"""

import asyncio
from datetime import timedelta

from campuspool.api.security import hash_password
from campuspool.domain.entities import EmergencyContact, Ride, User, utcnow
from campuspool.domain.enums import UNIVERSITIES, BookingStatus
from campuspool.infrastructure.database import async_session_factory, engine
from campuspool.infrastructure.repositories import SqlStorage
from campuspool.infrastructure.storage import Storage

DEMO_PASSWORD = "password123"

USERS = [
    {"username": "juan", "full_name": "Juan Dela Cruz", "university": UNIVERSITIES[1],
     "is_driver": True, "car_model": "Toyota Vios", "license_plate": "ABC 1234"},
    {"username": "maria", "full_name": "Maria Santos", "university": UNIVERSITIES[2],
     "is_driver": True, "car_model": "Honda City", "license_plate": "NCR 5678"},
    {"username": "paolo", "full_name": "Paolo Reyes", "university": UNIVERSITIES[0],
     "is_driver": True, "car_model": "Mitsubishi Mirage", "license_plate": "DAA 4321"},
    {"username": "bea", "full_name": "Bea Garcia", "university": UNIVERSITIES[3],
     "is_driver": True, "car_model": "Suzuki Ertiga", "license_plate": "LAG 8765"},
    {"username": "carlo", "full_name": "Carlo Mendoza", "university": UNIVERSITIES[1],
     "is_driver": False},
    {"username": "admin", "full_name": "CampusPool Admin", "university": UNIVERSITIES[1],
     "is_driver": False, "is_admin": True},
]

# (driver username, origin, destination, hours from now, price, seats)
RIDES = [
    ("juan", "Taft Avenue, Manila", "DLSU Manila", 20, 80, 3),
    ("juan", "DLSU Manila", "Alabang Town Center", 30, 150, 2),
    ("maria", "Quezon City Circle", "UST España", 18, 100, 4),
    ("maria", "UST España", "SM North EDSA", 44, 90, 3),
    ("paolo", "Intramuros", "MMCL", 22, 60, 2),
    ("bea", "Alabang", "FEU Alabang", 26, 70, 3),
]


async def seed(storage: Storage) -> dict:
    """Insert the demo data through *storage*; returns counts per kind."""
    if await storage.get_user_by_username(USERS[0]["username"]) is not None:
        print("Database already seeded. Skipping.")
        return {}

    # ── Users ─────────────────────────────────────────────────────────
    password_hash = hash_password(DEMO_PASSWORD)
    users = {}
    for u in USERS:
        user = await storage.create_user(
            User(
                password_hash=password_hash,
                email=f"{u['username']}@campuspool.example.com",
                **u,
            )
        )
        users[user.username] = user
    print(f"  Created {len(users)} users")

    # ── Rides ─────────────────────────────────────────────────────────
    now = utcnow().replace(minute=0, second=0, microsecond=0)
    rides = []
    for driver, origin, destination, hours, price, seats in RIDES:
        rides.append(
            await storage.create_ride(
                Ride(
                    driver_id=users[driver].id,
                    origin=origin,
                    destination=destination,
                    departure_time=now + timedelta(hours=hours),
                    price=price,
                    seat_capacity=seats,
                    available_seats=seats,
                )
            )
        )
    print(f"  Created {len(rides)} rides")

    # ── Bookings ──────────────────────────────────────────────────────
    passenger = users["carlo"]
    await storage.create_booking(rides[0].id, passenger.id)
    confirmed = await storage.create_booking(rides[2].id, passenger.id)
    await storage.update_booking_status(confirmed.id, BookingStatus.CONFIRMED)
    print("  Created 2 bookings")

    # ── Emergency contacts ────────────────────────────────────────────
    await storage.create_emergency_contact(
        EmergencyContact(
            user_id=passenger.id,
            name="Liza Mendoza",
            relationship="Mother",
            phone="+63 917 555 0101",
        )
    )
    print("  Created 1 emergency contact")

    return {"users": len(users), "rides": len(rides), "bookings": 2, "contacts": 1}


async def main():
    print("Seeding database...")
    async with async_session_factory() as session:
        await seed(SqlStorage(session))
        await session.commit()
    await engine.dispose()
    print("\nSeed complete!")


if __name__ == "__main__":
    asyncio.run(main())
