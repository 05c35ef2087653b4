import datetime
import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


CURRENCY_CHOICES = [
    ("USD", "USD"),
    ("EUR", "EUR"),
    ("GBP", "GBP"),
    ("AED", "AED"),
    ("SAR", "SAR"),
]

PRICING_MODE_CHOICES = [("per_night", "Per night"), ("one_time", "One time")]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Chalet",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                (
                    "capacity",
                    models.PositiveSmallIntegerField(
                        default=1,
                        help_text="Maximum number of guests.",
                        validators=[django.core.validators.MinValueValidator(1)],
                    ),
                ),
                ("base_price", models.DecimalField(decimal_places=2, max_digits=10)),
                (
                    "weekend_price",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Nightly price on weekend nights (Friday and Saturday by default).",
                        max_digits=10,
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Chalet",
                "verbose_name_plural": "Chalets",
                "ordering": ["name"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(capacity__gte=1),
                        name="chalet_capacity_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ChaletAddOn",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("pricing_mode", models.CharField(choices=PRICING_MODE_CHOICES, default="one_time", max_length=20)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Add-on",
                "verbose_name_plural": "Add-ons",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="ChaletSettings",
            fields=[
                (
                    "id",
                    models.PositiveSmallIntegerField(default=1, editable=False, primary_key=True, serialize=False),
                ),
                (
                    "deposit_type",
                    models.CharField(
                        choices=[("percentage", "Percentage"), ("fixed", "Fixed amount")],
                        default="percentage",
                        max_length=20,
                    ),
                ),
                (
                    "deposit_percentage",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("30.00"),
                        max_digits=5,
                        validators=[
                            django.core.validators.MinValueValidator(Decimal("0")),
                            django.core.validators.MaxValueValidator(Decimal("100")),
                        ],
                    ),
                ),
                (
                    "deposit_fixed",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("100.00"),
                        max_digits=10,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                    ),
                ),
                ("check_in_time", models.TimeField(default=datetime.time(14, 0))),
                ("check_out_time", models.TimeField(default=datetime.time(11, 0))),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Booking settings",
                "verbose_name_plural": "Booking settings",
            },
        ),
        migrations.CreateModel(
            name="ChaletBooking",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("booking_number", models.CharField(editable=False, max_length=20, unique=True)),
                ("check_in", models.DateField()),
                ("check_out", models.DateField()),
                ("guests_count", models.PositiveSmallIntegerField(default=1)),
                ("base_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("add_on_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("discount_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("deposit_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("total_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("currency", models.CharField(choices=CURRENCY_CHOICES, default="USD", max_length=3)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("confirmed", "Confirmed"),
                            ("checked_in", "Checked in"),
                            ("checked_out", "Checked out"),
                            ("cancelled", "Cancelled"),
                            ("no_show", "No show"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("guest_name", models.CharField(blank=True, max_length=255)),
                ("guest_email", models.EmailField(blank=True, max_length=254)),
                ("guest_phone", models.CharField(blank=True, max_length=32)),
                ("special_requests", models.TextField(blank=True)),
                ("cancellation_reason", models.CharField(blank=True, max_length=255)),
                ("confirmed_at", models.DateTimeField(blank=True, null=True)),
                ("checked_in_at", models.DateTimeField(blank=True, null=True)),
                ("checked_out_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField()),
                ("updated_at", models.DateTimeField()),
                (
                    "chalet",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bookings",
                        to="chalets.chalet",
                    ),
                ),
            ],
            options={
                "verbose_name": "Chalet booking",
                "verbose_name_plural": "Chalet bookings",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["chalet", "check_in", "check_out"], name="chalet_booking_dates_idx"),
                    models.Index(fields=["status"], name="chalet_booking_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(check_out__gt=models.F("check_in")),
                        name="chalet_booking_valid_dates",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            total_amount=models.F("base_amount")
                            + models.F("add_on_amount")
                            - models.F("discount_amount")
                        ),
                        name="chalet_booking_total_matches",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ChaletBookingAddOn",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("add_on_ref", models.UUIDField(help_text="Id of the add-on at booking time.")),
                ("name", models.CharField(max_length=255)),
                (
                    "quantity",
                    models.PositiveSmallIntegerField(
                        default=1, validators=[django.core.validators.MinValueValidator(1)]
                    ),
                ),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("subtotal", models.DecimalField(decimal_places=2, max_digits=12)),
                ("pricing_mode", models.CharField(choices=PRICING_MODE_CHOICES, default="one_time", max_length=20)),
                (
                    "add_on",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="booking_lines",
                        to="chalets.chaletaddon",
                    ),
                ),
                (
                    "booking",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="add_on_lines",
                        to="chalets.chaletbooking",
                    ),
                ),
            ],
            options={
                "verbose_name": "Booking add-on",
                "verbose_name_plural": "Booking add-ons",
                "ordering": ["id"],
            },
        ),
        migrations.CreateModel(
            name="ChaletRateRule",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                (
                    "price",
                    models.DecimalField(
                        blank=True, decimal_places=2, help_text="Flat nightly price.", max_digits=10, null=True
                    ),
                ),
                (
                    "price_multiplier",
                    models.DecimalField(
                        blank=True,
                        decimal_places=3,
                        help_text="Multiplier applied to the base/weekend price when no flat price is set.",
                        max_digits=6,
                        null=True,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                    ),
                ),
                ("priority", models.IntegerField(default=0, help_text="Higher priority wins.")),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "chalet",
                    models.ForeignKey(
                        blank=True,
                        help_text="Leave empty to apply the rule to every chalet.",
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="rate_rules",
                        to="chalets.chalet",
                    ),
                ),
            ],
            options={
                "verbose_name": "Rate rule",
                "verbose_name_plural": "Rate rules",
                "ordering": ["-priority", "start_date"],
                "indexes": [
                    models.Index(fields=["chalet", "start_date", "end_date"], name="rate_rule_window_idx"),
                ],
                "constraints": [
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
                ],
            },
        ),
    ]
