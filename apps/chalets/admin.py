"""Admin registration for chalets, rate rules, add-ons and bookings."""

from __future__ import annotations

from django.contrib import admin, messages

from apps.chalets.domain.rates import RateResolver

from .models import (
    Chalet,
    ChaletAddOn,
    ChaletBooking,
    ChaletBookingAddOn,
    ChaletRateRule,
    ChaletSettings,
)


@admin.register(Chalet)
class ChaletAdmin(admin.ModelAdmin):
    list_display = ("name", "capacity", "base_price", "weekend_price", "is_active", "deleted_at")
    list_filter = ("is_active",)
    search_fields = ("name",)
    readonly_fields = ("created_at", "updated_at")


@admin.register(ChaletRateRule)
class ChaletRateRuleAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "chalet",
        "start_date",
        "end_date",
        "price",
        "price_multiplier",
        "priority",
        "is_active",
    )
    list_filter = ("is_active", "chalet")
    search_fields = ("name",)
    readonly_fields = ("created_at", "updated_at")
    actions = ["check_ambiguities"]

    @admin.action(description="Check selected rules for ambiguous overlaps")
    def check_ambiguities(self, request, queryset):
        from apps.chalets.infrastructure.django_repository import DjangoChaletRepository

        repository = DjangoChaletRepository()
        rules = [repository.rate_rule_from_row(row) for row in queryset]
        ambiguities = RateResolver(rules).find_ambiguities()
        if not ambiguities:
            self.message_user(request, "No ambiguous rate rules found.", messages.SUCCESS)
            return
        for ambiguity in ambiguities:
            self.message_user(request, str(ambiguity), messages.WARNING)


@admin.register(ChaletAddOn)
class ChaletAddOnAdmin(admin.ModelAdmin):
    list_display = ("name", "price", "pricing_mode", "is_active")
    list_filter = ("pricing_mode", "is_active")
    search_fields = ("name",)


class ChaletBookingAddOnInline(admin.TabularInline):
    model = ChaletBookingAddOn
    extra = 0
    can_delete = False
    readonly_fields = ("add_on", "add_on_ref", "name", "quantity", "unit_price", "subtotal", "pricing_mode")


@admin.register(ChaletBooking)
class ChaletBookingAdmin(admin.ModelAdmin):
    list_display = (
        "booking_number",
        "chalet",
        "status",
        "check_in",
        "check_out",
        "guests_count",
        "total_amount",
        "deposit_amount",
        "created_at",
    )
    list_filter = ("status", "check_in", "check_out")
    search_fields = ("booking_number", "guest_name", "guest_email", "guest_phone")
    inlines = [ChaletBookingAddOnInline]
    readonly_fields = (
        "booking_number",
        "base_amount",
        "add_on_amount",
        "discount_amount",
        "deposit_amount",
        "total_amount",
        "currency",
        "confirmed_at",
        "checked_in_at",
        "checked_out_at",
        "cancelled_at",
        "created_at",
        "updated_at",
    )

    def has_add_permission(self, request) -> bool:
        # Bookings are created through the lifecycle manager only
        return False


@admin.register(ChaletSettings)
class ChaletSettingsAdmin(admin.ModelAdmin):
    list_display = ("deposit_type", "deposit_percentage", "deposit_fixed", "check_in_time", "check_out_time")

    def has_add_permission(self, request) -> bool:
        return not ChaletSettings.objects.exists()
