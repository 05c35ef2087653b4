"""
Repository contract for the reservation engine.

The core never talks to a database directly; it goes through this
interface. Implementations live in apps.chalets.infrastructure.
"""

from abc import ABC, abstractmethod
from typing import Iterable, List, Sequence
from uuid import UUID

from shared.domain.value_objects import DateRange

from apps.chalets.domain.entities import AddOn, Booking, BookingAddOn, Chalet, RateRule
from apps.chalets.domain.policies import DepositPolicy


class ChaletRepository(ABC):

    @abstractmethod
    def get_chalet_by_id(self, chalet_id: UUID) -> Chalet | None:
        """Return the chalet, including soft-deleted ones, or None"""

    @abstractmethod
    def get_active_bookings_for_chalet(
        self,
        chalet_id: UUID,
        date_range: DateRange,
    ) -> List[Booking]:
        """
        Bookings of the chalet that block dates and may intersect date_range.

        Must exclude cancelled, no-show and soft-deleted bookings. May return
        extra non-overlapping bookings; the caller filters.
        """

    @abstractmethod
    def get_active_rate_rules(self, chalet_id: UUID) -> List[RateRule]:
        """Active rules for the chalet plus the ones that apply to all chalets"""

    @abstractmethod
    def get_add_ons_by_ids(self, add_on_ids: Iterable[UUID]) -> List[AddOn]:
        """Add-ons with the given ids; unknown ids are silently left out"""

    @abstractmethod
    def get_deposit_policy(self) -> DepositPolicy | None:
        """Stored deposit policy, or None to use the configured default"""

    @abstractmethod
    def insert_booking(self, booking: Booking, add_on_rows: Sequence[BookingAddOn]) -> Booking:
        """
        Persist a new booking and its add-on snapshots atomically.

        Raises BookingConflictError when the store rejects the row
        (duplicate booking number, exclusion constraint).
        """

    @abstractmethod
    def get_booking_by_id(self, booking_id: UUID) -> Booking | None:
        pass

    @abstractmethod
    def get_booking_by_number(self, booking_number: str) -> Booking | None:
        pass

    @abstractmethod
    def update_booking(self, booking: Booking) -> Booking:
        """Persist status, dates, amounts and add-on lines of an existing booking"""
