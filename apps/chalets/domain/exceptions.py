"""
Chalet Booking Errors

Business errors raised by the reservation engine. They are returned to
whatever transport invokes the engine (HTTP handler, bot, CLI); mapping
them to status codes is the caller's job.

Repository failures (store unavailable etc.) are not wrapped and
propagate unchanged.
"""

from __future__ import annotations

from datetime import date
from typing import Sequence
from uuid import UUID


class ChaletBookingError(Exception):
    """Base class for chalet reservation business errors."""

    code = 'booking_error'


class InvalidRangeError(ChaletBookingError, ValueError):
    """Check-in is not strictly before check-out."""

    code = 'invalid_date_range'

    def __init__(self, check_in: date, check_out: date):
        self.check_in = check_in
        self.check_out = check_out
        super().__init__(
            f"Check-out date ({check_out}) must be after check-in date ({check_in})"
        )


class InvalidGuestCountError(ChaletBookingError):
    """Guest count is zero or exceeds the chalet capacity."""

    code = 'invalid_guest_count'

    def __init__(self, guests_count: int, capacity: int):
        self.guests_count = guests_count
        self.capacity = capacity
        super().__init__(
            f"Guests count ({guests_count}) must be between 1 and the chalet capacity ({capacity})"
        )


class UnavailableError(ChaletBookingError):
    """Requested dates conflict with an existing booking.

    Recoverable: the caller may pick different dates.
    """

    code = 'not_available'

    def __init__(self, message: str, conflicting_ids: Sequence[UUID] = ()):
        self.conflicting_ids = tuple(conflicting_ids)
        super().__init__(message)


class UnitInactiveError(UnavailableError):
    """The chalet exists but is switched off for booking."""

    code = 'chalet_unavailable'


class UnitNotFoundError(ChaletBookingError):
    code = 'chalet_not_found'

    def __init__(self, chalet_id: UUID):
        self.chalet_id = chalet_id
        super().__init__(f"Chalet {chalet_id} not found")


class BookingNotFoundError(ChaletBookingError):
    code = 'booking_not_found'

    def __init__(self, booking_ref):
        self.booking_ref = booking_ref
        super().__init__(f"Booking {booking_ref} not found")


class InvalidPolicyError(ChaletBookingError):
    """Deposit configuration is malformed."""

    code = 'invalid_deposit_policy'


class InvalidTransitionError(ChaletBookingError):
    """Booking status change not allowed by the lifecycle."""

    code = 'invalid_status'

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move booking from '{current}' to '{target}'")


class AddOnUnavailableError(ChaletBookingError):
    """A requested add-on does not exist or is inactive."""

    code = 'add_on_unavailable'

    def __init__(self, add_on_ids: Sequence[UUID]):
        self.add_on_ids = tuple(add_on_ids)
        joined = ', '.join(str(i) for i in self.add_on_ids)
        super().__init__(f"Add-ons not available: {joined}")


class RuleConfigurationAmbiguityError(ChaletBookingError):
    """Two or more rate rules tie on priority and window length for a night.

    Logged and reported, not raised during price resolution; the most
    recently created rule wins.
    """

    code = 'rate_rule_ambiguity'

    def __init__(self, night: date, rule_ids: Sequence[UUID], winner_id: UUID):
        self.night = night
        self.rule_ids = tuple(rule_ids)
        self.winner_id = winner_id
        joined = ', '.join(str(i) for i in self.rule_ids)
        super().__init__(
            f"Rate rules {joined} tie on priority and window length for {night}; "
            f"using most recently created rule {winner_id}"
        )


class BookingConflictError(Exception):
    """Raised by a repository when the store rejects an overlapping insert.

    This is the infrastructure signal (unique/exclusion constraint
    violation); the lifecycle manager turns it into UnavailableError.
    """
