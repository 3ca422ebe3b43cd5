"""Unit tests for ride / booking / alert state transitions (State Pattern)."""

import pytest

from campuspool.domain.entities import (
    Booking,
    EmergencyAlert,
    InvalidStateTransition,
    Ride,
)
from campuspool.domain.enums import AlertStatus, BookingStatus, RideStatus


class TestRideStateMachine:
    def test_initial_status_is_active(self):
        ride = Ride()
        assert ride.status == RideStatus.ACTIVE
        assert ride.is_active

    def test_active_to_cancelled(self):
        ride = Ride(status=RideStatus.ACTIVE)
        ride.transition_to(RideStatus.CANCELLED)
        assert ride.status == RideStatus.CANCELLED
        assert not ride.is_active

    def test_cancelled_is_terminal(self):
        ride = Ride(status=RideStatus.CANCELLED)
        with pytest.raises(InvalidStateTransition):
            ride.transition_to(RideStatus.ACTIVE)

    def test_cancelling_twice_fails(self):
        ride = Ride(status=RideStatus.CANCELLED)
        with pytest.raises(InvalidStateTransition):
            ride.transition_to(RideStatus.CANCELLED)


class TestBookingStateMachine:
    def test_initial_status_is_pending(self):
        assert Booking().status == BookingStatus.PENDING

    # ── Valid transitions ─────────────────────────────────────────

    @pytest.mark.parametrize(
        "start, target",
        [
            (BookingStatus.PENDING, BookingStatus.CONFIRMED),
            (BookingStatus.PENDING, BookingStatus.CANCELLED),
            (BookingStatus.CONFIRMED, BookingStatus.CANCELLED),
            (BookingStatus.CONFIRMED, BookingStatus.COMPLETED),
        ],
    )
    def test_legal_transition(self, start, target):
        booking = Booking(status=start)
        assert booking.transition_to(target) is True
        assert booking.status == target

    def test_same_status_is_noop(self):
        booking = Booking(status=BookingStatus.CONFIRMED)
        assert booking.transition_to(BookingStatus.CONFIRMED) is False
        assert booking.status == BookingStatus.CONFIRMED

    # ── Invalid transitions ───────────────────────────────────────

    def test_pending_to_completed_fails(self):
        booking = Booking(status=BookingStatus.PENDING)
        with pytest.raises(InvalidStateTransition):
            booking.transition_to(BookingStatus.COMPLETED)

    @pytest.mark.parametrize(
        "target", [BookingStatus.PENDING, BookingStatus.CONFIRMED]
    )
    def test_cancelled_cannot_be_revived(self, target):
        booking = Booking(status=BookingStatus.CANCELLED)
        with pytest.raises(InvalidStateTransition):
            booking.transition_to(target)

    def test_completed_cannot_be_cancelled(self):
        booking = Booking(status=BookingStatus.COMPLETED)
        with pytest.raises(InvalidStateTransition):
            booking.transition_to(BookingStatus.CANCELLED)

    def test_confirmed_back_to_pending_fails(self):
        booking = Booking(status=BookingStatus.CONFIRMED)
        with pytest.raises(InvalidStateTransition):
            booking.transition_to(BookingStatus.PENDING)


class TestEmergencyAlertResolution:
    def test_resolve_sets_timestamp(self):
        alert = EmergencyAlert()
        alert.resolve()
        assert alert.status == AlertStatus.RESOLVED
        assert alert.resolved_at is not None

    def test_resolving_twice_fails(self):
        alert = EmergencyAlert()
        alert.resolve()
        with pytest.raises(InvalidStateTransition):
            alert.resolve()
