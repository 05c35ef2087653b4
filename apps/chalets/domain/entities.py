"""
Chalet Domain Entities

Core business entities for the chalet reservation engine:
- Chalet: The rentable unit
- RateRule: Time-bounded override of the nightly price
- AddOn / BookingAddOn: Optional extras and their price snapshots
- Booking: Main aggregate representing a reservation
- BookingStatus: FSM states for booking lifecycle
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List
from uuid import UUID, uuid4

from shared.domain.base import Aggregate, Entity
from shared.domain.value_objects import DateRange, Money

from apps.chalets.domain.events import (
    BookingCancelled,
    BookingCheckedIn,
    BookingCheckedOut,
    BookingConfirmed,
    BookingCreated,
    BookingNoShow,
    BookingRescheduled,
)
from apps.chalets.domain.exceptions import InvalidTransitionError


class BookingStatus(Enum):
    """
    Booking Status Finite State Machine

    State transitions:
    - PENDING -> CONFIRMED (deposit received / staff confirmation)
    - PENDING -> CANCELLED
    - CONFIRMED -> CHECKED_IN (guest arrived)
    - CONFIRMED -> CANCELLED
    - CONFIRMED -> NO_SHOW (guest never arrived)
    - CHECKED_IN -> CHECKED_OUT (guest left)
    """
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    CHECKED_IN = 'checked_in'
    CHECKED_OUT = 'checked_out'
    CANCELLED = 'cancelled'
    NO_SHOW = 'no_show'


ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({
        BookingStatus.CHECKED_IN,
        BookingStatus.CANCELLED,
        BookingStatus.NO_SHOW,
    }),
    BookingStatus.CHECKED_IN: frozenset({BookingStatus.CHECKED_OUT}),
    BookingStatus.CHECKED_OUT: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.NO_SHOW: frozenset(),
}

# Statuses whose nights are free for other guests
NON_BLOCKING_STATUSES = frozenset({BookingStatus.CANCELLED, BookingStatus.NO_SHOW})


class PricingMode(Enum):
    """How an add-on price scales with the stay"""
    PER_NIGHT = 'per_night'
    ONE_TIME = 'one_time'


def money_sum(amounts, currency: str) -> Money:
    total = Money.zero(currency)
    for amount in amounts:
        total = total + amount
    return total


def generate_booking_number(today: date | None = None) -> str:
    """Generate booking number: C-{yymmdd}-{random}"""
    today = today or date.today()
    return f"C-{today.strftime('%y%m%d')}-{uuid4().hex[:6].upper()}"


@dataclass(eq=False, kw_only=True)
class Chalet(Entity):
    """A rentable chalet."""
    name: str = ''
    capacity: int
    base_price: Money
    weekend_price: Money
    is_active: bool = True
    deleted_at: datetime | None = None

    def __post_init__(self):
        if self.capacity < 1:
            raise ValueError("Chalet capacity must be at least 1")

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def currency(self) -> str:
        return self.base_price.currency


@dataclass(eq=False, kw_only=True)
class RateRule(Entity):
    """
    Nightly price override valid on [start_date, end_date] (both inclusive).

    A rule carries either a flat nightly price or a multiplier applied to
    the chalet's base/weekend price. chalet_id=None applies to every chalet.
    """
    chalet_id: UUID | None = None
    name: str = ''
    start_date: date
    end_date: date
    price: Money | None = None
    price_multiplier: Decimal | None = None
    priority: int = 0
    is_active: bool = True

    def __post_init__(self):
        if self.start_date > self.end_date:
            raise ValueError(
                f"Rate rule start date ({self.start_date}) must not be after end date ({self.end_date})"
            )
        if (self.price is None) == (self.price_multiplier is None):
            raise ValueError("Rate rule needs exactly one of price or price_multiplier")
        if self.price_multiplier is not None and self.price_multiplier < 0:
            raise ValueError("Price multiplier cannot be negative")

    @property
    def window_days(self) -> int:
        """Length of the validity window, endDate - startDate"""
        return (self.end_date - self.start_date).days

    def covers(self, night: date) -> bool:
        return self.start_date <= night <= self.end_date

    def applies_to(self, chalet_id: UUID, night: date) -> bool:
        return (
            self.is_active
            and (self.chalet_id is None or self.chalet_id == chalet_id)
            and self.covers(night)
        )


@dataclass(eq=False, kw_only=True)
class AddOn(Entity):
    """Optional extra (firewood, breakfast, late checkout...)."""
    name: str
    price: Money
    pricing_mode: PricingMode = PricingMode.ONE_TIME
    is_active: bool = True


@dataclass(kw_only=True)
class BookingAddOn:
    """
    Add-on line of a booking

    unit_price and subtotal are snapshots taken at booking time and are not
    affected by later changes to the add-on's price.
    """
    add_on_id: UUID
    name: str
    quantity: int
    unit_price: Money
    subtotal: Money
    pricing_mode: PricingMode = PricingMode.ONE_TIME
    booking_id: UUID | None = None

    def __post_init__(self):
        if self.quantity < 1:
            raise ValueError("Add-on quantity must be at least 1")

    @staticmethod
    def multiplier(pricing_mode: PricingMode, nights: int) -> int:
        return nights if pricing_mode == PricingMode.PER_NIGHT else 1

    @classmethod
    def for_stay(cls, add_on: AddOn, quantity: int, nights: int) -> 'BookingAddOn':
        subtotal = add_on.price * (quantity * cls.multiplier(add_on.pricing_mode, nights))
        return cls(
            add_on_id=add_on.id,
            name=add_on.name,
            quantity=quantity,
            unit_price=add_on.price,
            subtotal=subtotal,
            pricing_mode=add_on.pricing_mode,
        )

    def repriced(self, nights: int) -> 'BookingAddOn':
        """Recompute the subtotal for a new stay length from the snapshot price"""
        return BookingAddOn(
            add_on_id=self.add_on_id,
            name=self.name,
            quantity=self.quantity,
            unit_price=self.unit_price,
            subtotal=self.unit_price * (self.quantity * self.multiplier(self.pricing_mode, nights)),
            pricing_mode=self.pricing_mode,
            booking_id=self.booking_id,
        )


@dataclass(eq=False, kw_only=True)
class Booking(Aggregate):
    """
    Booking Aggregate Root

    Represents a guest's reservation of a chalet for [check-in, check-out).

    Key invariants:
    - Booking must have valid date range (check_in < check_out)
    - total_amount == base_amount + add_on_amount - discount_amount
    - Only pending/confirmed/checked_in bookings that are not deleted block dates
    - Status changes follow ALLOWED_TRANSITIONS
    """

    booking_number: str = field(default_factory=generate_booking_number)
    chalet_id: UUID
    dates: DateRange
    guests_count: int

    # Pricing (persisted values, rounded to cents)
    base_amount: Money
    add_on_amount: Money
    discount_amount: Money
    deposit_amount: Money
    total_amount: Money
    add_ons: List[BookingAddOn] = field(default_factory=list)

    # Guest contact information
    guest_name: str = ''
    guest_email: str = ''
    guest_phone: str = ''
    special_requests: str = ''

    status: BookingStatus = BookingStatus.PENDING
    cancellation_reason: str = ''

    confirmed_at: datetime | None = None
    checked_in_at: datetime | None = None
    checked_out_at: datetime | None = None
    cancelled_at: datetime | None = None
    deleted_at: datetime | None = None

    def __post_init__(self):
        if self.guests_count < 1:
            raise ValueError("Guests count must be at least 1")
        expected = self.base_amount + self.add_on_amount - self.discount_amount
        if expected != self.total_amount:
            raise ValueError(
                f"Total {self.total_amount} does not match base + add-ons - discount ({expected})"
            )
        for line in self.add_ons:
            line.booking_id = self.id

    @classmethod
    def create(
        cls,
        *,
        chalet_id: UUID,
        dates: DateRange,
        guests_count: int,
        base_amount: Money,
        add_on_amount: Money,
        discount_amount: Money,
        deposit_amount: Money,
        add_ons: List[BookingAddOn] | None = None,
        guest_name: str = '',
        guest_email: str = '',
        guest_phone: str = '',
        special_requests: str = '',
    ) -> 'Booking':
        """Create a pending booking and record BookingCreated"""
        base_amount = base_amount.quantize()
        add_on_amount = add_on_amount.quantize()
        discount_amount = min(discount_amount.quantize(), base_amount + add_on_amount)
        booking = cls(
            chalet_id=chalet_id,
            dates=dates,
            guests_count=guests_count,
            base_amount=base_amount,
            add_on_amount=add_on_amount,
            discount_amount=discount_amount,
            deposit_amount=deposit_amount.quantize(),
            total_amount=base_amount + add_on_amount - discount_amount,
            add_ons=list(add_ons or []),
            guest_name=guest_name,
            guest_email=guest_email,
            guest_phone=guest_phone,
            special_requests=special_requests,
        )
        booking.add_event(BookingCreated(
            aggregate_id=booking.id,
            booking_id=booking.id,
            booking_number=booking.booking_number,
            chalet_id=chalet_id,
            dates=dates,
            total_amount=booking.total_amount,
            deposit_amount=booking.deposit_amount,
        ))
        return booking

    def _transition(self, target: BookingStatus):
        if target not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(self.status.value, target.value)
        self.status = target
        self.touch()

    def confirm(self):
        """PENDING -> CONFIRMED"""
        self._transition(BookingStatus.CONFIRMED)
        self.confirmed_at = datetime.now()
        self.add_event(BookingConfirmed(
            aggregate_id=self.id,
            booking_id=self.id,
            chalet_id=self.chalet_id,
            dates=self.dates,
        ))

    def check_in(self):
        """CONFIRMED -> CHECKED_IN"""
        self._transition(BookingStatus.CHECKED_IN)
        self.checked_in_at = datetime.now()
        self.add_event(BookingCheckedIn(
            aggregate_id=self.id,
            booking_id=self.id,
            chalet_id=self.chalet_id,
        ))

    def check_out(self):
        """CHECKED_IN -> CHECKED_OUT"""
        self._transition(BookingStatus.CHECKED_OUT)
        self.checked_out_at = datetime.now()
        self.add_event(BookingCheckedOut(
            aggregate_id=self.id,
            booking_id=self.id,
            chalet_id=self.chalet_id,
        ))

    def cancel(self, reason: str = ''):
        """PENDING|CONFIRMED -> CANCELLED"""
        old_status = self.status
        self._transition(BookingStatus.CANCELLED)
        self.cancellation_reason = reason
        self.cancelled_at = datetime.now()
        self.add_event(BookingCancelled(
            aggregate_id=self.id,
            booking_id=self.id,
            chalet_id=self.chalet_id,
            reason=reason,
            old_status=old_status.value,
        ))

    def mark_no_show(self):
        """CONFIRMED -> NO_SHOW"""
        self._transition(BookingStatus.NO_SHOW)
        self.add_event(BookingNoShow(
            aggregate_id=self.id,
            booking_id=self.id,
            chalet_id=self.chalet_id,
        ))

    def reschedule(
        self,
        dates: DateRange,
        base_amount: Money,
        add_ons: List[BookingAddOn],
        deposit_amount: Money,
    ):
        """Move the stay to new dates with freshly computed prices"""
        if self.status not in (BookingStatus.PENDING, BookingStatus.CONFIRMED):
            raise InvalidTransitionError(self.status.value, 'rescheduled')

        old_dates = self.dates
        add_on_amount = money_sum((line.subtotal for line in add_ons), base_amount.currency)
        for line in add_ons:
            line.booking_id = self.id

        self.dates = dates
        self.add_ons = list(add_ons)
        self.base_amount = base_amount.quantize()
        self.add_on_amount = add_on_amount.quantize()
        subtotal = self.base_amount + self.add_on_amount
        if subtotal < self.discount_amount:
            self.discount_amount = subtotal
        self.total_amount = subtotal - self.discount_amount
        self.deposit_amount = deposit_amount.quantize()
        self.touch()

        self.add_event(BookingRescheduled(
            aggregate_id=self.id,
            booking_id=self.id,
            chalet_id=self.chalet_id,
            old_dates=old_dates,
            new_dates=dates,
            total_amount=self.total_amount,
        ))

    def soft_delete(self):
        self.deleted_at = datetime.now()
        self.touch()

    def blocks_dates(self) -> bool:
        """Whether this booking occupies its nights for other guests"""
        return self.deleted_at is None and self.status not in NON_BLOCKING_STATUSES

    @property
    def nights(self) -> int:
        return len(self.dates)

    @property
    def check_in_date(self) -> date:
        return self.dates.start_date

    @property
    def check_out_date(self) -> date:
        return self.dates.end_date

    @property
    def balance_due(self) -> Money:
        return self.total_amount - self.deposit_amount

    def __str__(self):
        return f"Booking {self.booking_number} ({self.status.value})"

    def __repr__(self):
        return (
            f"Booking(id={self.id}, booking_number={self.booking_number}, "
            f"status={self.status.value}, dates={self.dates})"
        )
