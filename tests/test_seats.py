"""Seat accounting: open seats are derived from booking state, never stored."""

import pytest

from campuspool.domain.enums import BookingStatus
from campuspool.domain.seats import available_seats, capacity_for, holds_seat, seats_held


class TestHoldsSeat:
    @pytest.mark.parametrize(
        "status", [BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.COMPLETED]
    )
    def test_live_bookings_hold_a_seat(self, status):
        assert holds_seat(status)

    def test_cancelled_booking_releases_its_seat(self):
        assert not holds_seat(BookingStatus.CANCELLED)

    def test_accepts_raw_values(self):
        assert holds_seat("pending")


class TestSeatCount:
    def test_pending_then_confirmed_counts_once(self):
        # one booking, whatever its stage, is one seat
        assert seats_held([BookingStatus.PENDING]) == 1
        assert seats_held([BookingStatus.CONFIRMED]) == 1

    def test_mixed_statuses(self):
        statuses = [
            BookingStatus.PENDING,
            BookingStatus.CONFIRMED,
            BookingStatus.CANCELLED,
            BookingStatus.COMPLETED,
            BookingStatus.CANCELLED,
        ]
        assert seats_held(statuses) == 3

    def test_no_bookings(self):
        assert seats_held([]) == 0

    def test_available_seats(self):
        assert available_seats(3, 1) == 2

    def test_available_seats_never_negative(self):
        # capacity shrunk below the seats already held
        assert available_seats(2, 3) == 0


class TestCapacityFor:
    def test_keeps_held_seats_on_top(self):
        assert capacity_for(2, 1) == 3

    def test_zero_open_seats(self):
        assert capacity_for(0, 2) == 2
        assert available_seats(capacity_for(0, 2), 2) == 0
