"""Chalet reservation models."""

from __future__ import annotations

import uuid
from datetime import time
from decimal import Decimal

from django.core.exceptions import ValidationError  # type: ignore
from django.core.validators import MaxValueValidator, MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

CURRENCY_CHOICES = [
    ("USD", "USD"),
    ("EUR", "EUR"),
    ("GBP", "GBP"),
    ("AED", "AED"),
    ("SAR", "SAR"),
]


class Chalet(models.Model):
    """Rentable chalet."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    capacity = models.PositiveSmallIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
        help_text=_("Maximum number of guests."),
    )
    base_price = models.DecimalField(max_digits=10, decimal_places=2)
    weekend_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text=_("Nightly price on weekend nights (Friday and Saturday by default)."),
    )
    is_active = models.BooleanField(default=True)
    deleted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Chalet")
        verbose_name_plural = _("Chalets")
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(capacity__gte=1),
                name="chalet_capacity_positive",
            ),
        ]

    def __str__(self) -> str:
        return self.name


class ChaletRateRule(models.Model):
    """Seasonal / special price for a date window (both ends inclusive)."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    chalet = models.ForeignKey(
        Chalet,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="rate_rules",
        help_text=_("Leave empty to apply the rule to every chalet."),
    )
    name = models.CharField(max_length=255)
    start_date = models.DateField()
    end_date = models.DateField()
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        help_text=_("Flat nightly price."),
    )
    price_multiplier = models.DecimalField(
        max_digits=6,
        decimal_places=3,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0"))],
        help_text=_("Multiplier applied to the base/weekend price when no flat price is set."),
    )
    priority = models.IntegerField(default=0, help_text=_("Higher priority wins."))
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Rate rule")
        verbose_name_plural = _("Rate rules")
        ordering = ["-priority", "start_date"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gte=models.F("start_date")),
                name="rate_rule_valid_window",
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(price__isnull=False, price_multiplier__isnull=True)
                    | models.Q(price__isnull=True, price_multiplier__isnull=False)
                ),
                name="rate_rule_price_or_multiplier",
            ),
        ]
        indexes = [
            models.Index(fields=["chalet", "start_date", "end_date"], name="rate_rule_window_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.start_date} - {self.end_date})"

    def clean(self) -> None:
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValidationError(_("End date cannot be before start date."))
        if (self.price is None) == (self.price_multiplier is None):
            raise ValidationError(_("Set either a flat price or a multiplier, not both."))


class ChaletAddOn(models.Model):
    """Optional extra sold with a stay."""

    class PricingMode(models.TextChoices):
        PER_NIGHT = "per_night", _("Per night")
        ONE_TIME = "one_time", _("One time")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    pricing_mode = models.CharField(
        max_length=20,
        choices=PricingMode.choices,
        default=PricingMode.ONE_TIME,
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Add-on")
        verbose_name_plural = _("Add-ons")
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class ChaletBooking(models.Model):
    """Reservation of a chalet for [check_in, check_out)."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        CONFIRMED = "confirmed", _("Confirmed")
        CHECKED_IN = "checked_in", _("Checked in")
        CHECKED_OUT = "checked_out", _("Checked out")
        CANCELLED = "cancelled", _("Cancelled")
        NO_SHOW = "no_show", _("No show")

    BLOCKING_STATUSES = (Status.PENDING, Status.CONFIRMED, Status.CHECKED_IN)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    booking_number = models.CharField(max_length=20, unique=True, editable=False)
    chalet = models.ForeignKey(Chalet, on_delete=models.PROTECT, related_name="bookings")
    check_in = models.DateField()
    check_out = models.DateField()
    guests_count = models.PositiveSmallIntegerField(default=1)
    base_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    add_on_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    deposit_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, choices=CURRENCY_CHOICES, default="USD")
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    guest_name = models.CharField(max_length=255, blank=True)
    guest_email = models.EmailField(blank=True)
    guest_phone = models.CharField(max_length=32, blank=True)
    special_requests = models.TextField(blank=True)
    cancellation_reason = models.CharField(max_length=255, blank=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    checked_in_at = models.DateTimeField(null=True, blank=True)
    checked_out_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    deleted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()

    class Meta:
        verbose_name = _("Chalet booking")
        verbose_name_plural = _("Chalet bookings")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(check_out__gt=models.F("check_in")),
                name="chalet_booking_valid_dates",
            ),
            models.CheckConstraint(
                condition=models.Q(
                    total_amount=models.F("base_amount") + models.F("add_on_amount") - models.F("discount_amount")
                ),
                name="chalet_booking_total_matches",
            ),
        ]
        indexes = [
            models.Index(fields=["chalet", "check_in", "check_out"], name="chalet_booking_dates_idx"),
            models.Index(fields=["status"], name="chalet_booking_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking {self.booking_number} for {self.chalet_id}"


class ChaletBookingAddOn(models.Model):
    """Add-on line of a booking with the price snapshot taken at booking time."""

    booking = models.ForeignKey(ChaletBooking, on_delete=models.CASCADE, related_name="add_on_lines")
    add_on = models.ForeignKey(
        ChaletAddOn,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="booking_lines",
    )
    add_on_ref = models.UUIDField(help_text=_("Id of the add-on at booking time."))
    name = models.CharField(max_length=255)
    quantity = models.PositiveSmallIntegerField(default=1, validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2)
    pricing_mode = models.CharField(
        max_length=20,
        choices=ChaletAddOn.PricingMode.choices,
        default=ChaletAddOn.PricingMode.ONE_TIME,
    )

    class Meta:
        verbose_name = _("Booking add-on")
        verbose_name_plural = _("Booking add-ons")
        ordering = ["id"]

    def __str__(self) -> str:
        return f"{self.name} x{self.quantity}"


class ChaletSettings(models.Model):
    """Site-wide booking settings, a single row overriding settings.CHALETS."""

    class DepositType(models.TextChoices):
        PERCENTAGE = "percentage", _("Percentage")
        FIXED = "fixed", _("Fixed amount")

    SINGLETON_PK = 1

    id = models.PositiveSmallIntegerField(primary_key=True, default=SINGLETON_PK, editable=False)
    deposit_type = models.CharField(
        max_length=20,
        choices=DepositType.choices,
        default=DepositType.PERCENTAGE,
    )
    deposit_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("30.00"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )
    deposit_fixed = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("100.00"),
        validators=[MinValueValidator(Decimal("0"))],
    )
    check_in_time = models.TimeField(default=time(14, 0))
    check_out_time = models.TimeField(default=time(11, 0))
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Booking settings")
        verbose_name_plural = _("Booking settings")

    def __str__(self) -> str:
        return "Booking settings"

    def save(self, *args, **kwargs):  # type: ignore
        self.pk = self.SINGLETON_PK
        if self._state.adding and type(self).objects.filter(pk=self.pk).exists():
            # Overwrite the existing row instead of inserting a second one
            self._state.adding = False
        super().save(*args, **kwargs)

    @classmethod
    def load(cls) -> "ChaletSettings | None":
        return cls.objects.filter(pk=cls.SINGLETON_PK).first()
