from datetime import datetime, timedelta, timezone

import pytest
from conftest import future

from barbershop.cache import Cache
from barbershop.domain.bookings import state_machine as sm
from barbershop.domain.bookings.repository import BookingRepository
from barbershop.domain.bookings.service import (
    BookingService,
    calculate_pricing,
    validate_booking_window,
)
from barbershop.errors import InvalidArgumentError, NotFoundError

NOW = datetime(2030, 1, 1, 12, 0)


class TestValidateBookingWindow:
    def test_returns_start_and_end(self):
        start, end = validate_booking_window(NOW + timedelta(hours=1), 45, now=NOW)
        assert start == NOW + timedelta(hours=1)
        assert end == NOW + timedelta(hours=1, minutes=45)

    def test_past_start_rejected(self):
        with pytest.raises(InvalidArgumentError):
            validate_booking_window(NOW - timedelta(minutes=1), 30, now=NOW)

    def test_start_equal_to_now_rejected(self):
        with pytest.raises(InvalidArgumentError):
            validate_booking_window(NOW, 30, now=NOW)

    @pytest.mark.parametrize("duration", [0, 14, 481, 1000])
    def test_duration_out_of_bounds(self, duration):
        with pytest.raises(InvalidArgumentError):
            validate_booking_window(NOW + timedelta(hours=1), duration, now=NOW)

    @pytest.mark.parametrize("duration", [15, 480])
    def test_duration_bounds_inclusive(self, duration):
        validate_booking_window(NOW + timedelta(hours=1), duration, now=NOW)

    def test_aware_start_converted_to_naive_utc(self):
        plus_two = timezone(timedelta(hours=2))
        start, _ = validate_booking_window(datetime(2030, 1, 1, 15, 0, tzinfo=plus_two), 30, now=NOW)
        assert start == datetime(2030, 1, 1, 13, 0)
        assert start.tzinfo is None


class TestCalculatePricing:
    def test_tax_on_full_price(self):
        pricing = calculate_pricing(40.0)
        assert pricing == {
            "service_price": 40.0,
            "discount_amount": 0.0,
            "tax_amount": 3.2,
            "total_price": 43.2,
        }

    def test_discount_reduces_taxable_amount(self):
        pricing = calculate_pricing(40.0, 10.0)
        assert pricing["tax_amount"] == 2.4
        assert pricing["total_price"] == 32.4

    def test_discount_above_price_rejected(self):
        with pytest.raises(InvalidArgumentError):
            calculate_pricing(20.0, 25.0)


class TestFindConflicts:
    def test_overlapping_booking_conflicts(self, db, barber, service, booking_factory):
        start = future()
        existing = booking_factory(barber, service, start=start, duration=45)

        conflicts = BookingRepository.find_conflicts(
            db, barber.id, start + timedelta(minutes=15), start + timedelta(minutes=60)
        )
        assert [b.id for b in conflicts] == [existing.id]

    def test_touching_intervals_do_not_conflict(self, db, barber, service, booking_factory):
        start = future()
        booking_factory(barber, service, start=start, duration=45)

        after = start + timedelta(minutes=45)
        assert BookingRepository.find_conflicts(db, barber.id, after, after + timedelta(minutes=30)) == []
        before = start - timedelta(minutes=30)
        assert BookingRepository.find_conflicts(db, barber.id, before, start) == []

    def test_containing_interval_conflicts(self, db, barber, service, booking_factory):
        start = future()
        booking_factory(barber, service, start=start + timedelta(minutes=10), duration=15)

        assert len(BookingRepository.find_conflicts(db, barber.id, start, start + timedelta(hours=1))) == 1

    @pytest.mark.parametrize("status", sorted(sm.TERMINAL_STATUSES))
    def test_terminal_bookings_never_conflict(self, db, barber, service, booking_factory, status):
        start = future()
        booking_factory(barber, service, start=start, status=status)

        assert BookingRepository.find_conflicts(db, barber.id, start, start + timedelta(minutes=45)) == []

    def test_other_barber_does_not_conflict(self, db, barber, barber_factory, service, booking_factory):
        start = future()
        booking_factory(barber_factory(), service, start=start)

        assert BookingRepository.find_conflicts(db, barber.id, start, start + timedelta(minutes=45)) == []

    def test_excluded_booking_ignored(self, db, barber, service, booking_factory):
        start = future()
        existing = booking_factory(barber, service, start=start)

        conflicts = BookingRepository.find_conflicts(
            db, barber.id, start, start + timedelta(minutes=45), exclude_booking_id=existing.id
        )
        assert conflicts == []


class TestCheckAvailability:
    def test_free_slot(self, db, barber):
        service = BookingService(db, Cache(enabled=False))
        result = service.check_availability(barber.id, future(), 30)
        assert result["available"] is True
        assert result["conflicts"] == []

    def test_busy_slot_lists_conflicts(self, db, barber, service, booking_factory):
        start = future()
        existing = booking_factory(barber, service, start=start, status=sm.CONFIRMED)

        result = BookingService(db, Cache(enabled=False)).check_availability(
            barber.id, start + timedelta(minutes=30), 30
        )
        assert result["available"] is False
        assert result["conflicts"] == [
            {
                "id": existing.id,
                "start_time": existing.scheduled_start_time,
                "end_time": existing.scheduled_end_time,
                "status": sm.CONFIRMED,
            }
        ]

    def test_unknown_barber(self, db):
        with pytest.raises(NotFoundError):
            BookingService(db, Cache(enabled=False)).check_availability(9999, future(), 30)

    def test_time_checked_before_barber_lookup(self, db):
        past = future(hours=-1)
        with pytest.raises(InvalidArgumentError):
            BookingService(db, Cache(enabled=False)).check_availability(9999, past, 30)

    def test_check_has_no_side_effects(self, db, barber, service, booking_factory):
        start = future()
        booking_factory(barber, service, start=start)
        availability = BookingService(db, Cache(enabled=False))

        availability.check_availability(barber.id, start, 45)
        availability.check_availability(barber.id, start, 45)

        _, total = BookingRepository.list_bookings(db, barber_id=barber.id)
        assert total == 1
