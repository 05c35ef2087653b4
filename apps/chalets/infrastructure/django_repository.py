"""Django ORM implementation of the chalet repository and unit of work."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Sequence
from uuid import UUID
import logging

from django.conf import settings  # type: ignore
from django.db import IntegrityError, transaction  # type: ignore
from django.db.models import Q  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore
from django.utils import timezone  # type: ignore

from shared.application.message_bus import MessageBus
from shared.domain.value_objects import DateRange, Money
from shared.infrastructure.django_uow import DjangoUnitOfWork

from apps.chalets import models
from apps.chalets.application.unit_of_work import ChaletUnitOfWork
from apps.chalets.conf import get_currency, stored_deposit_policy
from apps.chalets.domain.entities import (
    AddOn,
    Booking,
    BookingAddOn,
    BookingStatus,
    Chalet,
    PricingMode,
    RateRule,
)
from apps.chalets.domain.exceptions import BookingConflictError
from apps.chalets.domain.policies import DepositPolicy
from apps.chalets.domain.repository import ChaletRepository

logger = logging.getLogger(__name__)


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and settings.USE_TZ and timezone.is_naive(value):
        return timezone.make_aware(value)
    return value


class DjangoChaletRepository(ChaletRepository):
    """Maps ORM rows to domain entities and back."""

    def __init__(self, currency: str | None = None):
        self.currency = currency or get_currency()

    def _money(self, amount) -> Money:
        return Money(amount, self.currency)

    # ----- Mapping -----

    def _to_chalet(self, row: models.Chalet) -> Chalet:
        return Chalet(
            id=row.id,
            name=row.name,
            capacity=row.capacity,
            base_price=self._money(row.base_price),
            weekend_price=self._money(row.weekend_price),
            is_active=row.is_active,
            deleted_at=row.deleted_at,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def rate_rule_from_row(self, row: models.ChaletRateRule) -> RateRule:
        return RateRule(
            id=row.id,
            chalet_id=row.chalet_id,
            name=row.name,
            start_date=row.start_date,
            end_date=row.end_date,
            price=self._money(row.price) if row.price is not None else None,
            price_multiplier=row.price_multiplier,
            priority=row.priority,
            is_active=row.is_active,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def _to_add_on(self, row: models.ChaletAddOn) -> AddOn:
        return AddOn(
            id=row.id,
            name=row.name,
            price=self._money(row.price),
            pricing_mode=PricingMode(row.pricing_mode),
            is_active=row.is_active,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def _to_booking(self, row: models.ChaletBooking) -> Booking:
        currency = row.currency

        def money(amount):
            return Money(amount, currency)

        lines = [
            BookingAddOn(
                add_on_id=line.add_on_ref,
                name=line.name,
                quantity=line.quantity,
                unit_price=money(line.unit_price),
                subtotal=money(line.subtotal),
                pricing_mode=PricingMode(line.pricing_mode),
                booking_id=row.id,
            )
            for line in row.add_on_lines.all()
        ]
        return Booking(
            id=row.id,
            booking_number=row.booking_number,
            chalet_id=row.chalet_id,
            dates=DateRange(row.check_in, row.check_out),
            guests_count=row.guests_count,
            base_amount=money(row.base_amount),
            add_on_amount=money(row.add_on_amount),
            discount_amount=money(row.discount_amount),
            deposit_amount=money(row.deposit_amount),
            total_amount=money(row.total_amount),
            add_ons=lines,
            guest_name=row.guest_name,
            guest_email=row.guest_email,
            guest_phone=row.guest_phone,
            special_requests=row.special_requests,
            status=BookingStatus(row.status),
            cancellation_reason=row.cancellation_reason,
            confirmed_at=row.confirmed_at,
            checked_in_at=row.checked_in_at,
            checked_out_at=row.checked_out_at,
            cancelled_at=row.cancelled_at,
            deleted_at=row.deleted_at,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def _booking_fields(self, booking: Booking) -> dict:
        return {
            "booking_number": booking.booking_number,
            "chalet_id": booking.chalet_id,
            "check_in": booking.check_in_date,
            "check_out": booking.check_out_date,
            "guests_count": booking.guests_count,
            "base_amount": booking.base_amount.amount,
            "add_on_amount": booking.add_on_amount.amount,
            "discount_amount": booking.discount_amount.amount,
            "deposit_amount": booking.deposit_amount.amount,
            "total_amount": booking.total_amount.amount,
            "currency": booking.total_amount.currency,
            "status": booking.status.value,
            "guest_name": booking.guest_name,
            "guest_email": booking.guest_email,
            "guest_phone": booking.guest_phone,
            "special_requests": booking.special_requests,
            "cancellation_reason": booking.cancellation_reason,
            "confirmed_at": _aware(booking.confirmed_at),
            "checked_in_at": _aware(booking.checked_in_at),
            "checked_out_at": _aware(booking.checked_out_at),
            "cancelled_at": _aware(booking.cancelled_at),
            "deleted_at": _aware(booking.deleted_at),
            "created_at": _aware(booking.created_at),
            "updated_at": _aware(booking.updated_at),
        }

    def _create_lines(self, booking_id: UUID, add_on_rows: Sequence[BookingAddOn]):
        existing = set(
            models.ChaletAddOn.objects.filter(
                id__in=[line.add_on_id for line in add_on_rows]
            ).values_list("id", flat=True)
        )
        models.ChaletBookingAddOn.objects.bulk_create([
            models.ChaletBookingAddOn(
                booking_id=booking_id,
                add_on_id=line.add_on_id if line.add_on_id in existing else None,
                add_on_ref=line.add_on_id,
                name=line.name,
                quantity=line.quantity,
                unit_price=line.unit_price.amount,
                subtotal=line.subtotal.amount,
                pricing_mode=line.pricing_mode.value,
            )
            for line in add_on_rows
        ])

    def _bookings(self):
        return models.ChaletBooking.objects.prefetch_related("add_on_lines")

    # ----- Repository contract -----

    def get_chalet_by_id(self, chalet_id: UUID) -> Chalet | None:
        row = models.Chalet.objects.filter(pk=chalet_id).first()
        return self._to_chalet(row) if row else None

    def get_active_bookings_for_chalet(self, chalet_id: UUID, date_range: DateRange) -> List[Booking]:
        rows = self._bookings().filter(
            chalet_id=chalet_id,
            status__in=models.ChaletBooking.BLOCKING_STATUSES,
            deleted_at__isnull=True,
            check_in__lt=date_range.end_date,
            check_out__gt=date_range.start_date,
        )
        return [self._to_booking(row) for row in rows]

    def get_active_rate_rules(self, chalet_id: UUID) -> List[RateRule]:
        rows = models.ChaletRateRule.objects.filter(is_active=True).filter(
            Q(chalet_id=chalet_id) | Q(chalet__isnull=True)
        )
        return [self.rate_rule_from_row(row) for row in rows]

    def get_add_ons_by_ids(self, add_on_ids: Iterable[UUID]) -> List[AddOn]:
        rows = models.ChaletAddOn.objects.filter(id__in=list(add_on_ids))
        return [self._to_add_on(row) for row in rows]

    def get_deposit_policy(self) -> DepositPolicy | None:
        row = models.ChaletSettings.load()
        return stored_deposit_policy(row) if row else None

    def insert_booking(self, booking: Booking, add_on_rows: Sequence[BookingAddOn]) -> Booking:
        try:
            # Savepoint keeps the outer transaction usable after a conflict
            with transaction.atomic():
                models.ChaletBooking.objects.create(id=booking.id, **self._booking_fields(booking))
                self._create_lines(booking.id, add_on_rows)
        except IntegrityError as e:
            raise BookingConflictError(str(e)) from e

        logger.debug(f"Inserted booking {booking.booking_number} for chalet {booking.chalet_id}")
        return booking

    def get_booking_by_id(self, booking_id: UUID) -> Booking | None:
        row = self._bookings().filter(pk=booking_id).first()
        return self._to_booking(row) if row else None

    def get_booking_by_number(self, booking_number: str) -> Booking | None:
        row = self._bookings().filter(booking_number=booking_number).first()
        return self._to_booking(row) if row else None

    def update_booking(self, booking: Booking) -> Booking:
        fields = self._booking_fields(booking)
        fields.pop("created_at")
        updated = models.ChaletBooking.objects.filter(pk=booking.id).update(**fields)
        if not updated:
            raise models.ChaletBooking.DoesNotExist(f"Booking {booking.id} does not exist")

        models.ChaletBookingAddOn.objects.filter(booking_id=booking.id).delete()
        self._create_lines(booking.id, booking.add_ons)
        return booking


class DjangoChaletUnitOfWork(DjangoUnitOfWork, ChaletUnitOfWork):
    """
    Transaction per unit of work, chalet row locked with SELECT ... FOR UPDATE.

    On backends without row locks (SQLite) the lock is skipped and the
    database's own write serialization applies.
    """

    def __init__(self, bus: MessageBus | None = None, using: str | None = None):
        super().__init__(bus=bus, using=using)
        self.chalets = DjangoChaletRepository()

    def lock_chalet(self, chalet_id: UUID):
        queryset = _lock_queryset_if_possible(models.Chalet.objects.filter(pk=chalet_id))
        list(queryset.values_list("pk", flat=True))
        logger.debug(f"Locked chalet {chalet_id}")
