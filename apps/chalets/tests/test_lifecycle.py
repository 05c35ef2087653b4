"""Tests for BookingLifecycleManager over the in-memory unit of work."""

from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

import pytest

from apps.chalets.application.command_handlers import (
    BookingLifecycleManager,
    CancelBookingCommand,
    ConfirmBookingCommand,
    CreateBookingCommand,
    RescheduleBookingCommand,
    register_handlers,
)
from apps.chalets.domain.entities import BookingStatus, Chalet
from apps.chalets.domain.events import (
    BookingCancelled,
    BookingConfirmed,
    BookingCreated,
    BookingRescheduled,
)
from apps.chalets.domain.exceptions import (
    AddOnUnavailableError,
    BookingConflictError,
    BookingNotFoundError,
    InvalidGuestCountError,
    InvalidRangeError,
    InvalidTransitionError,
    UnavailableError,
    UnitInactiveError,
    UnitNotFoundError,
)
from apps.chalets.domain.policies import BookingSettings, DepositPolicy
from apps.chalets.infrastructure.memory import InMemoryChaletRepository, InMemoryChaletUnitOfWork
from apps.chalets.tests.factories import make_rule, usd


@pytest.fixture
def published(bus):
    events = []
    for event_type in (BookingCreated, BookingConfirmed, BookingCancelled, BookingRescheduled):
        bus.register_event_handler(event_type, events.append)
    return events


def test_new_years_booking_end_to_end(store, chalet, manager, create_command):
    store.add_rate_rule(make_rule(date(2026, 1, 1), date(2026, 1, 31), price=150, name="Season"))
    store.add_rate_rule(make_rule(date(2026, 1, 1), date(2026, 1, 2), price=200, name="Holiday"))

    booking = manager.create_booking(create_command(date(2026, 1, 1), date(2026, 1, 2)))

    assert booking.total_amount == usd(200)
    assert booking.deposit_amount == usd(60)
    assert booking.status == BookingStatus.PENDING
    assert booking.booking_number.startswith("C-")
    assert manager.get_booking(booking.id).total_amount == usd(200)


def test_create_with_add_ons_and_discount(chalet, firewood, cleaning, manager, create_command):
    command = create_command(
        add_ons=[(firewood.id, 1), (cleaning.id, 1)],
        discount_amount=Decimal('25'),
    )

    booking = manager.create_booking(command)

    # 2 weekday nights: 200 base, firewood 2 * 15, cleaning 40
    assert booking.base_amount == usd(200)
    assert booking.add_on_amount == usd(70)
    assert booking.discount_amount == usd(25)
    assert booking.total_amount == usd(245)
    assert booking.deposit_amount == usd('73.50')
    assert {line.name for line in booking.add_ons} == {"Firewood", "Final cleaning"}


def test_stored_deposit_policy_overrides_settings(store, chalet, manager, create_command):
    store.deposit_policy = DepositPolicy.fixed(500)

    booking = manager.create_booking(create_command())

    assert booking.deposit_amount == booking.total_amount == usd(200)


def test_booking_created_published_after_commit(chalet, manager, create_command, published):
    booking = manager.create_booking(create_command())

    assert [type(event) for event in published] == [BookingCreated]
    assert published[0].booking_id == booking.id


@pytest.mark.parametrize("guests_count", [1, 4])
def test_guest_count_within_capacity(manager, create_command, guests_count):
    assert manager.create_booking(create_command(guests_count=guests_count)).guests_count == guests_count


@pytest.mark.parametrize("guests_count", [0, 5])
def test_guest_count_outside_capacity(manager, create_command, guests_count):
    with pytest.raises(InvalidGuestCountError):
        manager.create_booking(create_command(guests_count=guests_count))


def test_invalid_range(manager, create_command):
    with pytest.raises(InvalidRangeError):
        manager.create_booking(create_command(date(2026, 1, 7), date(2026, 1, 7)))


def test_unknown_and_deleted_chalets(store, manager, create_command):
    with pytest.raises(UnitNotFoundError):
        manager.create_booking(CreateBookingCommand(uuid4(), date(2026, 1, 5), date(2026, 1, 6), 2))

    deleted = store.add_chalet(Chalet(
        name="Old Barn", capacity=2, base_price=usd(80), weekend_price=usd(90), deleted_at=datetime(2025, 1, 1),
    ))
    with pytest.raises(UnitNotFoundError):
        manager.create_booking(create_command(chalet_id=deleted.id))


def test_inactive_chalet(store, manager):
    closed = store.add_chalet(Chalet(
        name="Closed", capacity=2, base_price=usd(80), weekend_price=usd(90), is_active=False,
    ))

    with pytest.raises(UnitInactiveError):
        manager.create_booking(CreateBookingCommand(closed.id, date(2026, 1, 5), date(2026, 1, 6), 2))


def test_unknown_add_on(manager, create_command):
    missing = uuid4()

    with pytest.raises(AddOnUnavailableError) as exc_info:
        manager.create_booking(create_command(add_ons=[(missing, 1)]))

    assert exc_info.value.add_on_ids == (missing,)


def test_overlap_is_rejected_and_back_to_back_allowed(store, manager, create_command, published):
    first = manager.create_booking(create_command(date(2026, 1, 5), date(2026, 1, 8)))

    with pytest.raises(UnavailableError) as exc_info:
        manager.create_booking(create_command(date(2026, 1, 7), date(2026, 1, 9)))
    assert exc_info.value.conflicting_ids == (first.id,)

    manager.create_booking(create_command(date(2026, 1, 8), date(2026, 1, 10)))
    assert len(store.bookings) == 2
    assert len(published) == 2


def test_failed_create_leaves_no_trace(store, manager, create_command, published):
    with pytest.raises(InvalidGuestCountError):
        manager.create_booking(create_command(guests_count=9))

    assert store.bookings == {}
    assert published == []


def test_availability_queries(chalet, manager, create_command):
    manager.create_booking(create_command(date(2026, 1, 5), date(2026, 1, 7)))

    assert not manager.is_available(chalet.id, date(2026, 1, 6), date(2026, 1, 8))
    assert manager.is_available(chalet.id, date(2026, 1, 7), date(2026, 1, 8))
    assert manager.blocked_dates(chalet.id, date(2026, 1, 1), date(2026, 1, 31)) == [
        date(2026, 1, 5), date(2026, 1, 6),
    ]


def test_quote_does_not_persist(store, chalet, firewood, manager):
    quote = manager.quote(chalet.id, date(2026, 1, 9), date(2026, 1, 11), add_ons=[(firewood.id, 1)])

    assert quote.base_amount == usd(240)
    assert quote.add_on_amount == usd(30)
    assert quote.total_amount == usd(270)
    assert quote.deposit_amount == usd(81)
    assert store.bookings == {}


def test_full_lifecycle(manager, create_command):
    booking = manager.create_booking(create_command())

    manager.confirm(booking.id)
    manager.check_in(booking.id)
    checked_out = manager.check_out(booking.id)

    assert checked_out.status == BookingStatus.CHECKED_OUT
    assert manager.get_booking(booking.id).status == BookingStatus.CHECKED_OUT


def test_cancel_frees_dates(chalet, manager, create_command, published):
    booking = manager.create_booking(create_command())

    manager.cancel(booking.id, "Change of plans")

    assert manager.is_available(chalet.id, booking.check_in_date, booking.check_out_date)
    assert isinstance(published[-1], BookingCancelled)
    assert manager.get_booking(booking.id).cancellation_reason == "Change of plans"


def test_no_show_frees_dates(chalet, manager, create_command):
    booking = manager.create_booking(create_command())
    manager.confirm(booking.id)

    manager.mark_no_show(booking.id)

    assert manager.is_available(chalet.id, booking.check_in_date, booking.check_out_date)


def test_illegal_transition_is_not_persisted(manager, create_command, published):
    booking = manager.create_booking(create_command())

    with pytest.raises(InvalidTransitionError):
        manager.check_in(booking.id)

    assert manager.get_booking(booking.id).status == BookingStatus.PENDING
    assert [type(event) for event in published] == [BookingCreated]


def test_unknown_booking(manager):
    with pytest.raises(BookingNotFoundError):
        manager.confirm(uuid4())
    with pytest.raises(BookingNotFoundError):
        manager.get_booking_by_number("C-000000-XXXXXX")


def test_get_booking_by_number(manager, create_command):
    booking = manager.create_booking(create_command())

    assert manager.get_booking_by_number(booking.booking_number).id == booking.id


def test_soft_deleted_booking_is_hidden_and_frees_dates(chalet, manager, create_command):
    booking = manager.create_booking(create_command())

    manager.soft_delete(booking.id)

    with pytest.raises(BookingNotFoundError):
        manager.get_booking(booking.id)
    assert manager.is_available(chalet.id, booking.check_in_date, booking.check_out_date)


def test_reschedule_reprices_with_snapshot_add_on_prices(store, chalet, firewood, manager, create_command):
    booking = manager.create_booking(create_command(add_ons=[(firewood.id, 1)]))
    firewood.price = usd(99)

    # Friday + Saturday + Sunday nights: 120 + 120 + 100
    moved = manager.reschedule(booking.id, date(2026, 1, 9), date(2026, 1, 12))

    assert moved.base_amount == usd(340)
    assert moved.add_on_amount == usd(45)
    assert moved.total_amount == usd(385)
    assert moved.deposit_amount == usd('115.50')
    assert manager.get_booking(booking.id).dates == moved.dates


def test_reschedule_can_overlap_its_own_nights(manager, create_command):
    booking = manager.create_booking(create_command(date(2026, 1, 5), date(2026, 1, 7)))

    moved = manager.reschedule(booking.id, date(2026, 1, 6), date(2026, 1, 8))

    assert moved.check_in_date == date(2026, 1, 6)


def test_reschedule_into_other_booking_fails(manager, create_command):
    manager.create_booking(create_command(date(2026, 1, 10), date(2026, 1, 12)))
    booking = manager.create_booking(create_command(date(2026, 1, 5), date(2026, 1, 7)))

    with pytest.raises(UnavailableError):
        manager.reschedule(booking.id, date(2026, 1, 9), date(2026, 1, 11))

    assert manager.get_booking(booking.id).check_in_date == date(2026, 1, 5)


def test_reschedule_after_check_in_fails(manager, create_command):
    booking = manager.create_booking(create_command())
    manager.confirm(booking.id)
    manager.check_in(booking.id)

    with pytest.raises(InvalidTransitionError):
        manager.reschedule(booking.id, date(2026, 2, 1), date(2026, 2, 3))


def test_rate_rule_ambiguities(store, chalet, manager):
    store.add_rate_rule(make_rule(date(2026, 7, 1), date(2026, 7, 10), price=150))
    store.add_rate_rule(make_rule(date(2026, 7, 3), date(2026, 7, 12), price=160))

    assert len(manager.rate_rule_ambiguities(chalet.id)) == 1


class FlakyRepository(InMemoryChaletRepository):
    """Rejects the first N inserts as if a constraint fired."""

    def __init__(self, store, failures):
        super().__init__(store)
        self.failures = failures

    def insert_booking(self, booking, add_on_rows):
        if self.failures:
            self.failures -= 1
            raise BookingConflictError("duplicate key value violates unique constraint")
        return super().insert_booking(booking, add_on_rows)


def flaky_manager(store, bus, failures):
    def factory():
        uow = InMemoryChaletUnitOfWork(store, bus)
        uow.chalets = FlakyRepository(store, failures)
        return uow
    return BookingLifecycleManager(factory, BookingSettings())


def test_conflict_on_insert_is_retried_once(store, bus, chalet, create_command, published):
    manager = flaky_manager(store, bus, failures=1)

    booking = manager.create_booking(create_command())

    assert list(store.bookings) == [booking.id]
    assert [type(event) for event in published] == [BookingCreated]
    assert published[0].booking_number == booking.booking_number


def test_second_conflict_becomes_unavailable(store, bus, chalet, create_command, published):
    manager = flaky_manager(store, bus, failures=2)

    with pytest.raises(UnavailableError):
        manager.create_booking(create_command())

    assert store.bookings == {}
    assert published == []


def test_conflict_with_dates_taken_meanwhile(store, bus, chalet, create_command):
    class RacingRepository(InMemoryChaletRepository):
        def insert_booking(self, booking, add_on_rows):
            # Another writer commits the same nights just before our insert
            rival = InMemoryChaletUnitOfWork(store)
            with rival:
                InMemoryChaletRepository.insert_booking(rival.chalets, booking, add_on_rows)
            raise BookingConflictError("exclusion constraint")

    def factory():
        uow = InMemoryChaletUnitOfWork(store, bus)
        uow.chalets = RacingRepository(store)
        return uow

    with pytest.raises(UnavailableError):
        BookingLifecycleManager(factory).create_booking(create_command())


def test_commands_routed_through_bus(bus, manager, create_command, published):
    register_handlers(bus, manager)

    booking = bus.handle_command(create_command())
    bus.handle_command(ConfirmBookingCommand(booking.id))
    bus.handle_command(RescheduleBookingCommand(booking.id, date(2026, 1, 20), date(2026, 1, 22)))
    cancelled = bus.handle_command(CancelBookingCommand(booking.id, "Weather"))

    assert cancelled.status == BookingStatus.CANCELLED
    assert [type(event) for event in published] == [
        BookingCreated, BookingConfirmed, BookingRescheduled, BookingCancelled,
    ]
