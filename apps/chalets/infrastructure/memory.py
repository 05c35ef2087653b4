"""
In-memory storage for the reservation engine.

Used by the test-suite and anywhere a database is not wanted. Safe to share
between threads: the store guards its dictionaries with a mutex and hands
out one lock per chalet for units of work.

Writes made in a unit of work are staged and only reach the store on
commit, so a failed unit of work leaves the store untouched.
"""

from copy import deepcopy
from typing import Dict, Iterable, List, Sequence
from uuid import UUID
import logging
import threading

from shared.application.message_bus import MessageBus
from shared.domain.value_objects import DateRange

from apps.chalets.application.unit_of_work import ChaletUnitOfWork
from apps.chalets.domain.entities import AddOn, Booking, BookingAddOn, Chalet, RateRule
from apps.chalets.domain.exceptions import BookingConflictError
from apps.chalets.domain.policies import DepositPolicy
from apps.chalets.domain.repository import ChaletRepository

logger = logging.getLogger(__name__)


class InMemoryChaletStore:
    """Committed state shared by every unit of work created for it"""

    def __init__(self, deposit_policy: DepositPolicy | None = None):
        self.chalets: Dict[UUID, Chalet] = {}
        self.rate_rules: Dict[UUID, RateRule] = {}
        self.add_ons: Dict[UUID, AddOn] = {}
        self.bookings: Dict[UUID, Booking] = {}
        self.deposit_policy = deposit_policy
        self._mutex = threading.RLock()
        self._chalet_locks: Dict[UUID, threading.Lock] = {}

    def add_chalet(self, chalet: Chalet) -> Chalet:
        with self._mutex:
            self.chalets[chalet.id] = chalet
        return chalet

    def add_rate_rule(self, rule: RateRule) -> RateRule:
        with self._mutex:
            self.rate_rules[rule.id] = rule
        return rule

    def add_add_on(self, add_on: AddOn) -> AddOn:
        with self._mutex:
            self.add_ons[add_on.id] = add_on
        return add_on

    def lock_for(self, chalet_id: UUID) -> threading.Lock:
        with self._mutex:
            return self._chalet_locks.setdefault(chalet_id, threading.Lock())

    def snapshot_bookings(self) -> List[Booking]:
        with self._mutex:
            return [deepcopy(booking) for booking in self.bookings.values()]

    def save_bookings(self, bookings: Iterable[Booking]):
        with self._mutex:
            for booking in bookings:
                booking.clear_events()
                self.bookings[booking.id] = booking


class InMemoryChaletRepository(ChaletRepository):
    """
    Repository over an InMemoryChaletStore.

    Returned aggregates are copies; changes reach the store through
    insert_booking/update_booking and the owning unit of work's commit.
    """

    def __init__(self, store: InMemoryChaletStore):
        self.store = store
        self._staged: Dict[UUID, Booking] = {}

    def _bookings(self) -> List[Booking]:
        committed = {booking.id: booking for booking in self.store.snapshot_bookings()}
        committed.update({booking_id: deepcopy(b) for booking_id, b in self._staged.items()})
        return list(committed.values())

    def get_chalet_by_id(self, chalet_id: UUID) -> Chalet | None:
        with self.store._mutex:
            chalet = self.store.chalets.get(chalet_id)
            return deepcopy(chalet) if chalet else None

    def get_active_bookings_for_chalet(self, chalet_id: UUID, date_range: DateRange) -> List[Booking]:
        return [
            booking for booking in self._bookings()
            if booking.chalet_id == chalet_id
            and booking.blocks_dates()
            and booking.dates.overlaps_with(date_range)
        ]

    def get_active_rate_rules(self, chalet_id: UUID) -> List[RateRule]:
        with self.store._mutex:
            return [
                deepcopy(rule) for rule in self.store.rate_rules.values()
                if rule.is_active and rule.chalet_id in (None, chalet_id)
            ]

    def get_add_ons_by_ids(self, add_on_ids: Iterable[UUID]) -> List[AddOn]:
        with self.store._mutex:
            return [
                deepcopy(self.store.add_ons[add_on_id])
                for add_on_id in dict.fromkeys(add_on_ids)
                if add_on_id in self.store.add_ons
            ]

    def get_deposit_policy(self) -> DepositPolicy | None:
        return self.store.deposit_policy

    def insert_booking(self, booking: Booking, add_on_rows: Sequence[BookingAddOn]) -> Booking:
        for existing in self._bookings():
            if existing.booking_number == booking.booking_number:
                raise BookingConflictError(f"Duplicate booking number {booking.booking_number}")
            if (
                existing.chalet_id == booking.chalet_id
                and existing.blocks_dates()
                and existing.dates.overlaps_with(booking.dates)
            ):
                raise BookingConflictError(
                    f"Booking {existing.booking_number} already holds {existing.dates}"
                )

        stored = deepcopy(booking)
        stored.add_ons = [deepcopy(row) for row in add_on_rows]
        for row in stored.add_ons:
            row.booking_id = stored.id
        self._staged[stored.id] = stored
        return booking

    def get_booking_by_id(self, booking_id: UUID) -> Booking | None:
        for booking in self._bookings():
            if booking.id == booking_id:
                return booking
        return None

    def get_booking_by_number(self, booking_number: str) -> Booking | None:
        for booking in self._bookings():
            if booking.booking_number == booking_number:
                return booking
        return None

    def update_booking(self, booking: Booking) -> Booking:
        if self.get_booking_by_id(booking.id) is None:
            raise KeyError(f"Booking {booking.id} does not exist")
        self._staged[booking.id] = deepcopy(booking)
        return booking

    def flush(self):
        self.store.save_bookings(self._staged.values())
        self._staged.clear()

    def discard(self):
        self._staged.clear()


class InMemoryChaletUnitOfWork(ChaletUnitOfWork):
    """
    Unit of work over an InMemoryChaletStore.

    lock_chalet takes the chalet's mutex; it is released when the unit of
    work exits, after commit or rollback.
    """

    def __init__(self, store: InMemoryChaletStore, bus: MessageBus | None = None):
        super().__init__(bus)
        self.store = store
        self.chalets = InMemoryChaletRepository(store)
        self._held: List[threading.Lock] = []
        self.committed = False

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            super().__exit__(exc_type, exc_val, exc_tb)
        finally:
            while self._held:
                self._held.pop().release()

    def lock_chalet(self, chalet_id: UUID):
        lock = self.store.lock_for(chalet_id)
        if lock in self._held:
            return
        lock.acquire()
        self._held.append(lock)

    def commit(self):
        events = self._take_events()
        self.chalets.flush()
        self.committed = True
        self._publish_events(events)

    def rollback(self):
        self.chalets.discard()
        self._discard_events()
