"""Tests for AvailabilityChecker against the in-memory repository."""

from datetime import date, datetime
from uuid import uuid4

import pytest

from apps.chalets.domain.availability import AvailabilityChecker
from apps.chalets.domain.entities import BookingStatus
from apps.chalets.domain.exceptions import InvalidRangeError
from apps.chalets.infrastructure.memory import InMemoryChaletRepository
from apps.chalets.tests.factories import make_booking


@pytest.fixture
def checker(store):
    return AvailabilityChecker(InMemoryChaletRepository(store))


@pytest.fixture
def existing(store, chalet):
    booking = make_booking(chalet.id, date(2026, 3, 10), date(2026, 3, 14))
    store.save_bookings([booking])
    return booking


def test_free_chalet_is_available(checker, chalet):
    assert checker.is_available(chalet.id, date(2026, 3, 10), date(2026, 3, 12))


@pytest.mark.parametrize("check_in, check_out", [
    (date(2026, 3, 8), date(2026, 3, 11)),
    (date(2026, 3, 13), date(2026, 3, 16)),
    (date(2026, 3, 11), date(2026, 3, 12)),
    (date(2026, 3, 1), date(2026, 3, 31)),
])
def test_overlapping_ranges_are_unavailable(checker, chalet, existing, check_in, check_out):
    assert not checker.is_available(chalet.id, check_in, check_out)
    assert checker.conflicting_bookings(chalet.id, check_in, check_out) == [existing]


def test_back_to_back_stays_are_allowed(checker, chalet, existing):
    assert checker.is_available(chalet.id, date(2026, 3, 14), date(2026, 3, 16))
    assert checker.is_available(chalet.id, date(2026, 3, 7), date(2026, 3, 10))


@pytest.mark.parametrize("status", [BookingStatus.CANCELLED, BookingStatus.NO_SHOW])
def test_released_bookings_do_not_block(store, checker, chalet, status):
    store.save_bookings([make_booking(chalet.id, date(2026, 3, 10), date(2026, 3, 14), status=status)])

    assert checker.is_available(chalet.id, date(2026, 3, 11), date(2026, 3, 12))


def test_soft_deleted_booking_does_not_block(store, checker, chalet):
    store.save_bookings([
        make_booking(chalet.id, date(2026, 3, 10), date(2026, 3, 14), deleted_at=datetime(2026, 1, 1)),
    ])

    assert checker.is_available(chalet.id, date(2026, 3, 10), date(2026, 3, 14))


def test_checked_in_booking_blocks(store, checker, chalet):
    store.save_bookings([
        make_booking(chalet.id, date(2026, 3, 10), date(2026, 3, 14), status=BookingStatus.CHECKED_IN),
    ])

    assert not checker.is_available(chalet.id, date(2026, 3, 12), date(2026, 3, 13))


def test_exclude_booking_ignores_booking_under_modification(checker, chalet, existing):
    assert checker.is_available(
        chalet.id, date(2026, 3, 11), date(2026, 3, 15), exclude_booking_id=existing.id
    )


def test_other_chalets_bookings_are_ignored(checker, existing):
    assert checker.is_available(uuid4(), date(2026, 3, 10), date(2026, 3, 14))


@pytest.mark.parametrize("check_in, check_out", [
    (date(2026, 3, 10), date(2026, 3, 10)),
    (date(2026, 3, 12), date(2026, 3, 10)),
])
def test_invalid_range_is_rejected(checker, chalet, check_in, check_out):
    with pytest.raises(InvalidRangeError):
        checker.is_available(chalet.id, check_in, check_out)


def test_repeated_checks_give_same_answer(checker, chalet, existing):
    answers = {checker.is_available(chalet.id, date(2026, 3, 12), date(2026, 3, 15)) for _ in range(5)}

    assert answers == {False}


def test_repository_errors_propagate(chalet):
    class BrokenRepository(InMemoryChaletRepository):
        def get_active_bookings_for_chalet(self, chalet_id, date_range):
            raise ConnectionError("store unavailable")

    checker = AvailabilityChecker(BrokenRepository(store=None))

    with pytest.raises(ConnectionError):
        checker.is_available(chalet.id, date(2026, 3, 10), date(2026, 3, 12))


def test_blocked_dates_lists_occupied_nights(store, checker, chalet, existing):
    store.save_bookings([make_booking(chalet.id, date(2026, 3, 20), date(2026, 3, 22))])

    blocked = checker.blocked_dates(chalet.id, date(2026, 3, 12), date(2026, 3, 21))

    assert blocked == [
        date(2026, 3, 12),
        date(2026, 3, 13),
        date(2026, 3, 20),
    ]
