"""
Chalet Booking Domain Events

Events that represent things that have happened to a chalet booking.
These are published after successful transaction commits.
"""

from dataclasses import dataclass
from uuid import UUID

from shared.domain.base import DomainEvent
from shared.domain.value_objects import DateRange, Money


@dataclass(kw_only=True)
class BookingCreated(DomainEvent):
    """
    Event: A new booking was created (status pending)

    Triggers:
    - Send booking confirmation email to guest
    - Notify staff dashboard
    - Request deposit payment
    """
    booking_id: UUID
    booking_number: str
    chalet_id: UUID
    dates: DateRange
    total_amount: Money
    deposit_amount: Money


@dataclass(kw_only=True)
class BookingConfirmed(DomainEvent):
    """
    Event: Booking confirmed (PENDING -> CONFIRMED)

    Triggers:
    - Issue access ticket / QR code
    - Notify guest
    """
    booking_id: UUID
    chalet_id: UUID
    dates: DateRange


@dataclass(kw_only=True)
class BookingCheckedIn(DomainEvent):
    """Event: Guest has checked in (CONFIRMED -> CHECKED_IN)"""
    booking_id: UUID
    chalet_id: UUID


@dataclass(kw_only=True)
class BookingCheckedOut(DomainEvent):
    """
    Event: Guest has checked out (CHECKED_IN -> CHECKED_OUT)

    Triggers:
    - Schedule housekeeping
    - Request review from guest
    """
    booking_id: UUID
    chalet_id: UUID


@dataclass(kw_only=True)
class BookingCancelled(DomainEvent):
    """
    Event: Booking was cancelled

    Triggers:
    - Refund deposit (if applicable)
    - Notify guest and staff
    """
    booking_id: UUID
    chalet_id: UUID
    reason: str
    old_status: str


@dataclass(kw_only=True)
class BookingNoShow(DomainEvent):
    """Event: Guest never arrived for a confirmed booking"""
    booking_id: UUID
    chalet_id: UUID


@dataclass(kw_only=True)
class BookingRescheduled(DomainEvent):
    """Event: Booking moved to new dates and repriced"""
    booking_id: UUID
    chalet_id: UUID
    old_dates: DateRange
    new_dates: DateRange
    total_amount: Money
