"""
Integration tests for the rides, bookings and user profile endpoints.

Each test runs once per storage backend (see ``conftest.client``).
"""

import pytest


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_error_bodies_documented(self, client):
        schema = (await client.get("/openapi.json")).json()
        responses = schema["paths"]["/api/bookings/{booking_id}/status"]["put"]["responses"]
        assert responses["409"]["content"]["application/json"]["schema"] == {
            "$ref": "#/components/schemas/ErrorResponse"
        }
        assert "ErrorResponse" in schema["components"]["schemas"]


class TestUsers:
    @pytest.mark.asyncio
    async def test_universities(self, client):
        resp = await client.get("/api/universities")
        assert resp.status_code == 200
        assert len(resp.json()) == 6

    @pytest.mark.asyncio
    async def test_public_profile(self, client, register):
        user, _ = await register("amber")
        resp = await client.get(f"/api/users/{user['id']}")
        assert resp.status_code == 200
        assert resp.json()["username"] == "amber"

    @pytest.mark.asyncio
    async def test_unknown_user(self, client):
        assert (await client.get("/api/users/9999")).status_code == 404

    @pytest.mark.asyncio
    async def test_update_profile(self, client, register):
        _, headers = await register("basil")
        resp = await client.put(
            "/api/users/profile",
            json={"bio": "Early riser", "isDriver": True, "carModel": "Jazz", "fullName": None},
            headers=headers,
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["bio"] == "Early riser"
        assert body["isDriver"] is True
        assert body["carModel"] == "Jazz"
        assert body["fullName"] == "Basil"

    @pytest.mark.asyncio
    async def test_update_profile_requires_auth(self, client):
        resp = await client.put("/api/users/profile", json={"bio": "x"})
        assert resp.status_code == 401


class TestRides:
    @pytest.mark.asyncio
    async def test_create_ride(self, client, register, offer_ride):
        driver, headers = await register("drew", is_driver=True)
        ride = await offer_ride(headers, seats=3)
        assert ride["driverId"] == driver["id"]
        assert ride["seatCapacity"] == 3
        assert ride["availableSeats"] == 3
        assert ride["status"] == "active"

    @pytest.mark.asyncio
    async def test_passenger_cannot_offer_ride(self, client, register, offer_ride):
        _, headers = await register("pat")
        resp = await client.post(
            "/api/rides",
            json={
                "origin": "A",
                "destination": "B",
                "departureTime": "2030-01-01T08:00:00Z",
                "price": 50,
                "availableSeats": 2,
            },
            headers=headers,
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_driver_id_must_match(self, client, register):
        _, headers = await register("dina", is_driver=True)
        resp = await client.post(
            "/api/rides",
            json={
                "origin": "A",
                "destination": "B",
                "departureTime": "2030-01-01T08:00:00Z",
                "price": 50,
                "availableSeats": 2,
                "driverId": 9999,
            },
            headers=headers,
        )
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_invalid_seat_count(self, client, register):
        _, headers = await register("dora", is_driver=True)
        resp = await client.post(
            "/api/rides",
            json={
                "origin": "A",
                "destination": "B",
                "departureTime": "2030-01-01T08:00:00Z",
                "price": 50,
                "availableSeats": 0,
            },
            headers=headers,
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Validation failed"

    @pytest.mark.asyncio
    async def test_list_and_get(self, client, register, offer_ride):
        _, headers = await register("dave", is_driver=True)
        ride = await offer_ride(headers)

        listed = await client.get("/api/rides")
        assert listed.status_code == 200
        assert [r["id"] for r in listed.json()] == [ride["id"]]

        one = await client.get(f"/api/rides/{ride['id']}")
        assert one.status_code == 200
        assert one.json()["origin"] == "Taft Avenue"

        assert (await client.get("/api/rides/9999")).status_code == 404

    @pytest.mark.asyncio
    async def test_list_by_university_includes_driver(self, client, register, offer_ride):
        driver, headers = await register("dean", is_driver=True, university="UST")
        _, other = await register("dale", is_driver=True, university="DLSU")
        ride = await offer_ride(headers)
        await offer_ride(other)

        resp = await client.get("/api/rides/university/UST")
        assert resp.status_code == 200
        rides = resp.json()
        assert [r["id"] for r in rides] == [ride["id"]]
        assert rides[0]["driver"]["id"] == driver["id"]
        assert rides[0]["driver"]["fullName"] == "Dean"

    @pytest.mark.asyncio
    async def test_driver_rides_only_for_self(self, client, register, offer_ride):
        driver, headers = await register("duke", is_driver=True)
        other, other_headers = await register("dusk", is_driver=True)
        await offer_ride(headers)

        mine = await client.get(f"/api/rides/driver/{driver['id']}", headers=headers)
        assert mine.status_code == 200
        assert len(mine.json()) == 1

        theirs = await client.get(f"/api/rides/driver/{driver['id']}", headers=other_headers)
        assert theirs.status_code == 403

    @pytest.mark.asyncio
    async def test_update_ride(self, client, register, offer_ride):
        _, headers = await register("dion", is_driver=True)
        ride = await offer_ride(headers, seats=2)
        resp = await client.put(
            f"/api/rides/{ride['id']}",
            json={"price": 200, "description": "Aircon", "origin": None},
            headers=headers,
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["price"] == 200
        assert body["description"] == "Aircon"
        assert body["origin"] == "Taft Avenue"

    @pytest.mark.asyncio
    async def test_update_seats_keeps_held_seats(self, client, register, offer_ride):
        _, driver = await register("dirk", is_driver=True)
        _, passenger = await register("pia")
        ride = await offer_ride(driver, seats=2)
        await client.post("/api/bookings", json={"rideId": ride["id"]}, headers=passenger)

        resp = await client.put(
            f"/api/rides/{ride['id']}", json={"availableSeats": 3}, headers=driver
        )
        assert resp.status_code == 200
        assert resp.json()["availableSeats"] == 3
        assert resp.json()["seatCapacity"] == 4

    @pytest.mark.asyncio
    async def test_only_owner_updates(self, client, register, offer_ride):
        _, headers = await register("dane", is_driver=True)
        _, stranger = await register("sid", is_driver=True)
        ride = await offer_ride(headers)

        resp = await client.put(f"/api/rides/{ride['id']}", json={"price": 1}, headers=stranger)
        assert resp.status_code == 403
        resp = await client.delete(f"/api/rides/{ride['id']}", headers=stranger)
        assert resp.status_code == 403
        resp = await client.put("/api/rides/9999", json={"price": 1}, headers=headers)
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_is_soft_cancel(self, client, register, offer_ride):
        _, headers = await register("doug", is_driver=True)
        ride = await offer_ride(headers)

        resp = await client.delete(f"/api/rides/{ride['id']}", headers=headers)
        assert resp.status_code == 204

        kept = await client.get(f"/api/rides/{ride['id']}")
        assert kept.status_code == 200
        assert kept.json()["status"] == "cancelled"
        assert (await client.get("/api/rides")).json() == []

    @pytest.mark.asyncio
    async def test_cancelled_ride_is_frozen(self, client, register, offer_ride):
        _, headers = await register("drake", is_driver=True)
        ride = await offer_ride(headers)
        await client.delete(f"/api/rides/{ride['id']}", headers=headers)

        resp = await client.put(f"/api/rides/{ride['id']}", json={"price": 5}, headers=headers)
        assert resp.status_code == 409
        again = await client.delete(f"/api/rides/{ride['id']}", headers=headers)
        assert again.status_code == 409


class TestBookings:
    @pytest.mark.asyncio
    async def test_booking_lifecycle_and_seats(self, client, register, offer_ride):
        _, driver = await register("dev", is_driver=True)
        passenger, rider = await register("paz")
        ride = await offer_ride(driver, seats=3)

        # pending request reserves a seat
        resp = await client.post("/api/bookings", json={"rideId": ride["id"]}, headers=rider)
        assert resp.status_code == 201
        booking = resp.json()
        assert booking["status"] == "pending"
        assert booking["passengerId"] == passenger["id"]
        seats = (await client.get(f"/api/rides/{ride['id']}")).json()["availableSeats"]
        assert seats == 2

        # confirming does not take a second seat
        resp = await client.put(
            f"/api/bookings/{booking['id']}/status",
            json={"status": "confirmed"},
            headers=driver,
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "confirmed"
        seats = (await client.get(f"/api/rides/{ride['id']}")).json()["availableSeats"]
        assert seats == 2

        # cancelling the ride cascades to the booking
        resp = await client.put(
            f"/api/rides/{ride['id']}", json={"status": "cancelled"}, headers=driver
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "cancelled"

        mine = (await client.get("/api/bookings/passenger", headers=rider)).json()
        assert mine[0]["status"] == "cancelled"

    @pytest.mark.asyncio
    async def test_full_ride_rejects_booking(self, client, register, offer_ride):
        _, driver = await register("dom", is_driver=True)
        _, first = await register("pip")
        _, second = await register("pru")
        ride = await offer_ride(driver, seats=1)

        ok = await client.post("/api/bookings", json={"rideId": ride["id"]}, headers=first)
        assert ok.status_code == 201
        full = await client.post("/api/bookings", json={"rideId": ride["id"]}, headers=second)
        assert full.status_code == 400
        assert full.json()["detail"] == "No available seats for this ride"

    @pytest.mark.asyncio
    async def test_duplicate_booking_rejected(self, client, register, offer_ride):
        _, driver = await register("dag", is_driver=True)
        _, rider = await register("pol")
        ride = await offer_ride(driver, seats=3)

        await client.post("/api/bookings", json={"rideId": ride["id"]}, headers=rider)
        again = await client.post("/api/bookings", json={"rideId": ride["id"]}, headers=rider)
        assert again.status_code == 400
        assert again.json()["detail"] == "You have already booked this ride"

    @pytest.mark.asyncio
    async def test_rebook_after_cancel(self, client, register, offer_ride):
        _, driver = await register("dex", is_driver=True)
        _, rider = await register("pam")
        ride = await offer_ride(driver, seats=1)

        booking = (
            await client.post("/api/bookings", json={"rideId": ride["id"]}, headers=rider)
        ).json()
        await client.put(
            f"/api/bookings/{booking['id']}/status", json={"status": "cancelled"}, headers=rider
        )
        seats = (await client.get(f"/api/rides/{ride['id']}")).json()["availableSeats"]
        assert seats == 1

        again = await client.post("/api/bookings", json={"rideId": ride["id"]}, headers=rider)
        assert again.status_code == 201

    @pytest.mark.asyncio
    async def test_cannot_book_own_or_cancelled_ride(self, client, register, offer_ride):
        _, driver = await register("dan", is_driver=True)
        _, rider = await register("peg")
        ride = await offer_ride(driver)

        own = await client.post("/api/bookings", json={"rideId": ride["id"]}, headers=driver)
        assert own.status_code == 400

        await client.delete(f"/api/rides/{ride['id']}", headers=driver)
        gone = await client.post("/api/bookings", json={"rideId": ride["id"]}, headers=rider)
        assert gone.status_code == 400

        missing = await client.post("/api/bookings", json={"rideId": 9999}, headers=rider)
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_only_driver_confirms(self, client, register, offer_ride):
        _, driver = await register("dee", is_driver=True)
        _, rider = await register("pia")
        _, stranger = await register("sue")
        ride = await offer_ride(driver)
        booking = (
            await client.post("/api/bookings", json={"rideId": ride["id"]}, headers=rider)
        ).json()
        url = f"/api/bookings/{booking['id']}/status"

        self_confirm = await client.put(url, json={"status": "confirmed"}, headers=rider)
        assert self_confirm.status_code == 403
        outsider = await client.put(url, json={"status": "cancelled"}, headers=stranger)
        assert outsider.status_code == 403

    @pytest.mark.asyncio
    async def test_illegal_transition_is_conflict(self, client, register, offer_ride):
        _, driver = await register("dot", is_driver=True)
        _, rider = await register("pen")
        ride = await offer_ride(driver)
        booking = (
            await client.post("/api/bookings", json={"rideId": ride["id"]}, headers=rider)
        ).json()
        url = f"/api/bookings/{booking['id']}/status"

        skip = await client.put(url, json={"status": "completed"}, headers=driver)
        assert skip.status_code == 409

        await client.put(url, json={"status": "cancelled"}, headers=rider)
        revive = await client.put(url, json={"status": "confirmed"}, headers=driver)
        assert revive.status_code == 409

        same = await client.put(url, json={"status": "cancelled"}, headers=rider)
        assert same.status_code == 200
        assert same.json()["status"] == "cancelled"

    @pytest.mark.asyncio
    async def test_unknown_status_is_validation_error(self, client, register, offer_ride):
        _, driver = await register("don", is_driver=True)
        _, rider = await register("pix")
        ride = await offer_ride(driver)
        booking = (
            await client.post("/api/bookings", json={"rideId": ride["id"]}, headers=rider)
        ).json()
        resp = await client.put(
            f"/api/bookings/{booking['id']}/status", json={"status": "teleported"}, headers=rider
        )
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_delete_booking_frees_seat(self, client, register, offer_ride):
        _, driver = await register("dug", is_driver=True)
        _, rider = await register("pat")
        _, stranger = await register("sal")
        ride = await offer_ride(driver, seats=1)
        booking = (
            await client.post("/api/bookings", json={"rideId": ride["id"]}, headers=rider)
        ).json()

        denied = await client.delete(f"/api/bookings/{booking['id']}", headers=stranger)
        assert denied.status_code == 403

        resp = await client.delete(f"/api/bookings/{booking['id']}", headers=rider)
        assert resp.status_code == 204
        seats = (await client.get(f"/api/rides/{ride['id']}")).json()["availableSeats"]
        assert seats == 1
        gone = await client.delete(f"/api/bookings/{booking['id']}", headers=rider)
        assert gone.status_code == 404

    @pytest.mark.asyncio
    async def test_ride_bookings_visible_to_driver_only(self, client, register, offer_ride):
        _, driver = await register("dil", is_driver=True)
        _, rider = await register("pet")
        ride = await offer_ride(driver)
        await client.post("/api/bookings", json={"rideId": ride["id"]}, headers=rider)

        resp = await client.get(f"/api/bookings/ride/{ride['id']}", headers=driver)
        assert resp.status_code == 200
        assert len(resp.json()) == 1

        denied = await client.get(f"/api/bookings/ride/{ride['id']}", headers=rider)
        assert denied.status_code == 403

    @pytest.mark.asyncio
    async def test_passenger_bookings_include_ride_and_driver(
        self, client, register, offer_ride
    ):
        driver, driver_headers = await register("dax", is_driver=True)
        _, rider = await register("pax")
        ride = await offer_ride(driver_headers)
        await client.post("/api/bookings", json={"rideId": ride["id"]}, headers=rider)

        resp = await client.get("/api/bookings/passenger", headers=rider)
        assert resp.status_code == 200
        (booking,) = resp.json()
        assert booking["ride"]["id"] == ride["id"]
        assert booking["ride"]["driver"]["id"] == driver["id"]

    @pytest.mark.asyncio
    async def test_cancel_cascade_leaves_completed(self, client, register, offer_ride):
        _, driver = await register("dov", is_driver=True)
        _, done = await register("pim")
        _, waiting = await register("pom")
        ride = await offer_ride(driver, seats=3)

        finished = (
            await client.post("/api/bookings", json={"rideId": ride["id"]}, headers=done)
        ).json()
        url = f"/api/bookings/{finished['id']}/status"
        await client.put(url, json={"status": "confirmed"}, headers=driver)
        await client.put(url, json={"status": "completed"}, headers=driver)
        await client.post("/api/bookings", json={"rideId": ride["id"]}, headers=waiting)

        assert (await client.delete(f"/api/rides/{ride['id']}", headers=driver)).status_code == 204

        bookings = (await client.get(f"/api/bookings/ride/{ride['id']}", headers=driver)).json()
        statuses = {b["id"]: b["status"] for b in bookings}
        assert statuses[finished["id"]] == "completed"
        assert sorted(statuses.values()) == ["cancelled", "completed"]
