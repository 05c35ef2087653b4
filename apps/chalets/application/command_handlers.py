"""
Chalet Booking Command Handlers

Use cases of the reservation engine. BookingLifecycleManager orchestrates
availability, pricing and the booking state machine inside units of work.

Commands:
- CreateBookingCommand: Create a new pending booking
- ConfirmBookingCommand: Confirm a pending booking
- CheckInBookingCommand: Check in a guest
- CheckOutBookingCommand: Check out a guest
- CancelBookingCommand: Cancel a booking
- MarkNoShowCommand: Record that the guest never arrived
- RescheduleBookingCommand: Move a booking to new dates
- DeleteBookingCommand: Soft delete a booking
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Callable, List, Sequence, Tuple
from uuid import UUID
import logging

from shared.application.message_bus import MessageBus
from shared.domain.value_objects import Money

from apps.chalets.application.unit_of_work import ChaletUnitOfWork
from apps.chalets.domain.availability import AvailabilityChecker, make_range
from apps.chalets.domain.deposit import DepositCalculator
from apps.chalets.domain.entities import (
    AddOn,
    Booking,
    BookingStatus,
    Chalet,
    money_sum,
)
from apps.chalets.domain.exceptions import (
    AddOnUnavailableError,
    BookingConflictError,
    BookingNotFoundError,
    InvalidGuestCountError,
    InvalidTransitionError,
    RuleConfigurationAmbiguityError,
    UnavailableError,
    UnitInactiveError,
    UnitNotFoundError,
)
from apps.chalets.domain.policies import BookingSettings, DepositPolicy
from apps.chalets.domain.pricing import PriceCalculator, StayQuote
from apps.chalets.domain.rates import AmbiguityCallback, RateResolver
from apps.chalets.domain.repository import ChaletRepository

logger = logging.getLogger(__name__)


# ===== Commands =====

@dataclass
class CreateBookingCommand:
    """
    Command to create a new booking

    add_ons is a list of (add_on_id, quantity) pairs.
    """
    chalet_id: UUID
    check_in: date
    check_out: date
    guests_count: int
    guest_name: str = ''
    guest_email: str = ''
    guest_phone: str = ''
    special_requests: str = ''
    add_ons: List[Tuple[UUID, int]] = field(default_factory=list)
    discount_amount: Decimal = Decimal('0')


@dataclass
class ConfirmBookingCommand:
    booking_id: UUID


@dataclass
class CheckInBookingCommand:
    booking_id: UUID


@dataclass
class CheckOutBookingCommand:
    booking_id: UUID


@dataclass
class CancelBookingCommand:
    booking_id: UUID
    reason: str = ''


@dataclass
class MarkNoShowCommand:
    booking_id: UUID


@dataclass
class RescheduleBookingCommand:
    """Command to move a booking; prices are recomputed for the new nights"""
    booking_id: UUID
    check_in: date
    check_out: date


@dataclass
class DeleteBookingCommand:
    booking_id: UUID


# ===== Results =====

@dataclass(frozen=True)
class BookingQuote:
    """Price preview of a stay, nothing persisted"""
    stay: StayQuote
    discount_amount: Money
    total_amount: Money
    deposit_amount: Money

    @property
    def base_amount(self) -> Money:
        return self.stay.base_amount

    @property
    def add_on_amount(self) -> Money:
        return self.stay.add_on_amount


# ===== Lifecycle manager =====

class BookingLifecycleManager:
    """
    Owns the booking state machine and the create/reschedule orchestration.

    The manager does no locking itself. Each write runs in a unit of work
    from uow_factory, and the unit of work serializes writes per chalet
    (row lock in the database, a mutex in memory).

    Create strategy:
    1. Validate dates, chalet and guest count
    2. Lock the chalet for the rest of the unit of work
    3. Check availability, price the stay, compute the deposit
    4. Insert booking + add-on snapshots
    5. On a store-level conflict, re-check once and retry the insert
    6. Commit; BookingCreated is published after commit
    """

    def __init__(
        self,
        uow_factory: Callable[[], ChaletUnitOfWork],
        settings: BookingSettings | None = None,
        on_ambiguity: AmbiguityCallback | None = None,
    ):
        self.uow_factory = uow_factory
        self.settings = settings or BookingSettings()
        self.on_ambiguity = on_ambiguity

    # ----- Queries -----

    def is_available(
        self,
        chalet_id: UUID,
        check_in: date,
        check_out: date,
        exclude_booking_id: UUID | None = None,
    ) -> bool:
        with self.uow_factory() as uow:
            return AvailabilityChecker(uow.chalets).is_available(
                chalet_id, check_in, check_out, exclude_booking_id
            )

    def blocked_dates(self, chalet_id: UUID, start: date, end: date) -> List[date]:
        with self.uow_factory() as uow:
            return AvailabilityChecker(uow.chalets).blocked_dates(chalet_id, start, end)

    def quote(
        self,
        chalet_id: UUID,
        check_in: date,
        check_out: date,
        add_ons: Sequence[Tuple[UUID, int]] = (),
        discount_amount: Decimal = Decimal('0'),
        guests_count: int | None = None,
    ) -> BookingQuote:
        """Price a stay the way create_booking would, without persisting it"""
        make_range(check_in, check_out)
        with self.uow_factory() as uow:
            chalet = self._get_bookable_chalet(uow.chalets, chalet_id)
            if guests_count is not None:
                self._check_guests(chalet, guests_count)
            return self._quote(uow.chalets, chalet, check_in, check_out, add_ons, discount_amount)

    def get_booking(self, booking_id: UUID) -> Booking:
        with self.uow_factory() as uow:
            return self._get_booking(uow.chalets, booking_id)

    def get_booking_by_number(self, booking_number: str) -> Booking:
        with self.uow_factory() as uow:
            booking = uow.chalets.get_booking_by_number(booking_number)
            if booking is None or booking.deleted_at is not None:
                raise BookingNotFoundError(booking_number)
            return booking

    def rate_rule_ambiguities(self, chalet_id: UUID) -> List[RuleConfigurationAmbiguityError]:
        """Rule pairs that can tie when pricing this chalet"""
        with self.uow_factory() as uow:
            rules = uow.chalets.get_active_rate_rules(chalet_id)
        return RateResolver(rules).find_ambiguities()

    # ----- Create -----

    def create_booking(self, command: CreateBookingCommand) -> Booking:
        """
        Create a pending booking

        Raises:
            InvalidRangeError, UnitNotFoundError, UnitInactiveError,
            InvalidGuestCountError, AddOnUnavailableError, UnavailableError
        """
        logger.info(
            f"Creating booking for chalet {command.chalet_id}, "
            f"dates {command.check_in} - {command.check_out}, guests {command.guests_count}"
        )
        make_range(command.check_in, command.check_out)

        with self.uow_factory() as uow:
            repo = uow.chalets
            chalet = self._get_bookable_chalet(repo, command.chalet_id)
            self._check_guests(chalet, command.guests_count)

            uow.lock_chalet(chalet.id)
            availability = AvailabilityChecker(repo)
            self._ensure_available(availability, chalet.id, command.check_in, command.check_out)

            quote = self._quote(
                repo, chalet, command.check_in, command.check_out,
                command.add_ons, command.discount_amount,
            )

            def build() -> Booking:
                return Booking.create(
                    chalet_id=chalet.id,
                    dates=quote.stay.dates,
                    guests_count=command.guests_count,
                    base_amount=quote.base_amount,
                    add_on_amount=quote.add_on_amount,
                    discount_amount=quote.discount_amount,
                    deposit_amount=quote.deposit_amount,
                    add_ons=list(quote.stay.add_on_lines),
                    guest_name=command.guest_name,
                    guest_email=command.guest_email,
                    guest_phone=command.guest_phone,
                    special_requests=command.special_requests,
                )

            booking = self._insert_with_retry(repo, availability, build)
            uow.collect_events(booking)

        logger.info(
            f"Booking created successfully: {booking.booking_number} "
            f"(ID: {booking.id}, total {booking.total_amount})"
        )
        return booking

    def _insert_with_retry(
        self,
        repo: ChaletRepository,
        availability: AvailabilityChecker,
        build: Callable[[], Booking],
    ) -> Booking:
        booking = build()
        try:
            return repo.insert_booking(booking, booking.add_ons)
        except BookingConflictError as e:
            logger.warning(
                f"Store rejected booking {booking.booking_number} for chalet "
                f"{booking.chalet_id} ({e}), re-checking availability"
            )

        self._ensure_available(
            availability, booking.chalet_id, booking.check_in_date, booking.check_out_date
        )
        retry = build()
        try:
            return repo.insert_booking(retry, retry.add_ons)
        except BookingConflictError as e:
            logger.warning(f"Retry for chalet {retry.chalet_id} rejected again: {e}")
            raise UnavailableError(
                f"Chalet {retry.chalet_id} is not available for dates {retry.dates}"
            ) from e

    # ----- Lifecycle -----

    def confirm(self, booking_id: UUID) -> Booking:
        return self._apply(booking_id, 'Confirming', lambda booking: booking.confirm())

    def check_in(self, booking_id: UUID) -> Booking:
        return self._apply(booking_id, 'Checking in', lambda booking: booking.check_in())

    def check_out(self, booking_id: UUID) -> Booking:
        return self._apply(booking_id, 'Checking out', lambda booking: booking.check_out())

    def cancel(self, booking_id: UUID, reason: str = '') -> Booking:
        return self._apply(booking_id, 'Cancelling', lambda booking: booking.cancel(reason))

    def mark_no_show(self, booking_id: UUID) -> Booking:
        return self._apply(booking_id, 'Marking no-show for', lambda booking: booking.mark_no_show())

    def soft_delete(self, booking_id: UUID) -> Booking:
        return self._apply(booking_id, 'Deleting', lambda booking: booking.soft_delete())

    def reschedule(self, booking_id: UUID, check_in: date, check_out: date) -> Booking:
        """
        Move a pending or confirmed booking to new dates

        Nights are repriced against the current rules; add-on lines keep
        their snapshot unit prices. The discount is kept, capped at the new
        subtotal.
        """
        logger.info(f"Rescheduling booking {booking_id} to {check_in} - {check_out}")
        dates = make_range(check_in, check_out)

        with self.uow_factory() as uow:
            repo = uow.chalets
            booking = self._get_locked_booking(uow, booking_id)
            if booking.status not in (BookingStatus.PENDING, BookingStatus.CONFIRMED):
                raise InvalidTransitionError(booking.status.value, 'rescheduled')

            chalet = self._get_bookable_chalet(repo, booking.chalet_id)
            self._ensure_available(
                AvailabilityChecker(repo), chalet.id, check_in, check_out,
                exclude_booking_id=booking.id,
            )

            stay = self._calculator(repo, chalet.id).compute_stay_total(chalet, check_in, check_out)
            lines = [line.repriced(len(dates)) for line in booking.add_ons]
            subtotal = stay.base_amount + money_sum((line.subtotal for line in lines), chalet.currency)
            discount = min(booking.discount_amount, subtotal.quantize())
            deposit = self._deposit_calculator(repo).compute(subtotal.quantize() - discount)

            booking.reschedule(dates, stay.base_amount, lines, deposit)
            repo.update_booking(booking)
            uow.collect_events(booking)

        logger.info(f"Booking {booking.booking_number} rescheduled to {dates}")
        return booking

    def _apply(self, booking_id: UUID, action: str, change: Callable[[Booking], None]) -> Booking:
        logger.info(f"{action} booking {booking_id}")

        with self.uow_factory() as uow:
            booking = self._get_locked_booking(uow, booking_id)
            change(booking)
            uow.chalets.update_booking(booking)
            uow.collect_events(booking)

        logger.info(f"Booking {booking.booking_number} is now {booking.status.value}")
        return booking

    # ----- Helpers -----

    def _get_booking(self, repo: ChaletRepository, booking_id: UUID) -> Booking:
        booking = repo.get_booking_by_id(booking_id)
        if booking is None or booking.deleted_at is not None:
            raise BookingNotFoundError(booking_id)
        return booking

    def _get_locked_booking(self, uow: ChaletUnitOfWork, booking_id: UUID) -> Booking:
        """
        Load a booking for a write, holding its chalet's lock

        The booking is read again once the lock is held; the first read
        only tells which chalet to lock.
        """
        booking = self._get_booking(uow.chalets, booking_id)
        uow.lock_chalet(booking.chalet_id)
        return self._get_booking(uow.chalets, booking_id)

    def _get_bookable_chalet(self, repo: ChaletRepository, chalet_id: UUID) -> Chalet:
        chalet = repo.get_chalet_by_id(chalet_id)
        if chalet is None or chalet.is_deleted:
            raise UnitNotFoundError(chalet_id)
        if not chalet.is_active:
            raise UnitInactiveError(f"Chalet {chalet_id} is not available for booking")
        return chalet

    def _check_guests(self, chalet: Chalet, guests_count: int):
        if not 1 <= guests_count <= chalet.capacity:
            raise InvalidGuestCountError(guests_count, chalet.capacity)

    def _ensure_available(
        self,
        availability: AvailabilityChecker,
        chalet_id: UUID,
        check_in: date,
        check_out: date,
        exclude_booking_id: UUID | None = None,
    ):
        conflicts = availability.conflicting_bookings(
            chalet_id, check_in, check_out, exclude_booking_id
        )
        if conflicts:
            logger.warning(
                f"Chalet {chalet_id} not available for {check_in} - {check_out}, "
                f"conflicts with {', '.join(b.booking_number for b in conflicts)}"
            )
            raise UnavailableError(
                f"Chalet {chalet_id} is not available for dates {check_in} - {check_out}. "
                f"Found {len(conflicts)} overlapping booking(s).",
                conflicting_ids=[b.id for b in conflicts],
            )

    def _calculator(self, repo: ChaletRepository, chalet_id: UUID) -> PriceCalculator:
        rules = repo.get_active_rate_rules(chalet_id)
        return PriceCalculator(RateResolver(rules, on_ambiguity=self.on_ambiguity), self.settings)

    def _deposit_calculator(self, repo: ChaletRepository) -> DepositCalculator:
        policy: DepositPolicy = repo.get_deposit_policy() or self.settings.deposit_policy
        return DepositCalculator(policy)

    def _load_add_ons(
        self,
        repo: ChaletRepository,
        requested: Sequence[Tuple[UUID, int]],
    ) -> List[Tuple[AddOn, int]]:
        if not requested:
            return []
        found = {add_on.id: add_on for add_on in repo.get_add_ons_by_ids([i for i, _ in requested])}
        missing = [add_on_id for add_on_id, _ in requested if add_on_id not in found]
        if missing:
            raise AddOnUnavailableError(missing)
        return [(found[add_on_id], quantity) for add_on_id, quantity in requested]

    def _quote(
        self,
        repo: ChaletRepository,
        chalet: Chalet,
        check_in: date,
        check_out: date,
        add_ons: Sequence[Tuple[UUID, int]],
        discount_amount: Decimal,
    ) -> BookingQuote:
        stay = self._calculator(repo, chalet.id).compute_stay_total(
            chalet, check_in, check_out, self._load_add_ons(repo, add_ons)
        )
        discount = min(Money(discount_amount, chalet.currency).quantize(), stay.subtotal)
        total = stay.subtotal - discount
        return BookingQuote(
            stay=stay,
            discount_amount=discount,
            total_amount=total,
            deposit_amount=self._deposit_calculator(repo).compute(total),
        )


def register_handlers(bus: MessageBus, manager: BookingLifecycleManager):
    """Route booking commands on the bus to the lifecycle manager"""
    bus.register_command_handler(CreateBookingCommand, manager.create_booking)
    bus.register_command_handler(
        ConfirmBookingCommand, lambda command: manager.confirm(command.booking_id)
    )
    bus.register_command_handler(
        CheckInBookingCommand, lambda command: manager.check_in(command.booking_id)
    )
    bus.register_command_handler(
        CheckOutBookingCommand, lambda command: manager.check_out(command.booking_id)
    )
    bus.register_command_handler(
        CancelBookingCommand, lambda command: manager.cancel(command.booking_id, command.reason)
    )
    bus.register_command_handler(
        MarkNoShowCommand, lambda command: manager.mark_no_show(command.booking_id)
    )
    bus.register_command_handler(
        RescheduleBookingCommand,
        lambda command: manager.reschedule(command.booking_id, command.check_in, command.check_out),
    )
    bus.register_command_handler(
        DeleteBookingCommand, lambda command: manager.soft_delete(command.booking_id)
    )
