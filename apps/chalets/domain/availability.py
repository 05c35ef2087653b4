"""
Availability checks for a single chalet.

Stays are half-open [check_in, check_out): the check-out day of one
booking can be the check-in day of the next.
"""

from datetime import date, timedelta
from typing import List
from uuid import UUID
import logging

from shared.domain.value_objects import DateRange

from apps.chalets.domain.entities import Booking
from apps.chalets.domain.exceptions import InvalidRangeError
from apps.chalets.domain.repository import ChaletRepository

logger = logging.getLogger(__name__)


def make_range(check_in: date, check_out: date) -> DateRange:
    if check_in >= check_out:
        raise InvalidRangeError(check_in, check_out)
    return DateRange(check_in, check_out)


class AvailabilityChecker:
    """
    Answers "is this chalet free for these nights?"

    Read only. Whatever the repository raises is propagated as is.
    """

    def __init__(self, repository: ChaletRepository):
        self.repository = repository

    def conflicting_bookings(
        self,
        chalet_id: UUID,
        check_in: date,
        check_out: date,
        exclude_booking_id: UUID | None = None,
    ) -> List[Booking]:
        requested = make_range(check_in, check_out)
        candidates = self.repository.get_active_bookings_for_chalet(chalet_id, requested)
        return [
            booking for booking in candidates
            if booking.id != exclude_booking_id
            and booking.blocks_dates()
            and booking.dates.overlaps_with(requested)
        ]

    def is_available(
        self,
        chalet_id: UUID,
        check_in: date,
        check_out: date,
        exclude_booking_id: UUID | None = None,
    ) -> bool:
        conflicts = self.conflicting_bookings(chalet_id, check_in, check_out, exclude_booking_id)
        if conflicts:
            logger.debug(
                f"Chalet {chalet_id} not available for {check_in} - {check_out}: "
                f"{len(conflicts)} conflicting booking(s)"
            )
            return False
        return True

    def blocked_dates(self, chalet_id: UUID, start: date, end: date) -> List[date]:
        """Sorted list of occupied nights within [start, end)"""
        window = make_range(start, end)
        blocked = set()
        for booking in self.repository.get_active_bookings_for_chalet(chalet_id, window):
            if not booking.blocks_dates() or not booking.dates.overlaps_with(window):
                continue
            night = max(booking.check_in_date, start)
            last = min(booking.check_out_date, end)
            while night < last:
                blocked.add(night)
                night += timedelta(days=1)
        return sorted(blocked)
