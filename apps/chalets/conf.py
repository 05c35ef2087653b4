"""
Engine configuration from Django settings.

settings.CHALETS holds the defaults; a stored ChaletSettings row, when
present, overrides the deposit policy and check-in/check-out times.
"""

from __future__ import annotations

from datetime import time
from typing import Any, Dict

from django.conf import settings  # type: ignore

from apps.chalets.domain.policies import BookingSettings, DepositPolicy

DEFAULTS: Dict[str, Any] = {
    "CURRENCY": "USD",
    "WEEKEND_DAYS": [4, 5],
    "DEPOSIT_TYPE": "percentage",
    "DEPOSIT_PERCENTAGE": 30,
    "DEPOSIT_FIXED": 100,
    "CHECK_IN_TIME": "14:00",
    "CHECK_OUT_TIME": "11:00",
}


def get_config() -> Dict[str, Any]:
    return {**DEFAULTS, **getattr(settings, "CHALETS", {})}


def get_currency() -> str:
    return get_config()["CURRENCY"]


def _parse_time(value) -> time:
    if isinstance(value, time):
        return value
    return time.fromisoformat(str(value))


def get_deposit_policy() -> DepositPolicy:
    """Deposit policy from settings.CHALETS only"""
    config = get_config()
    return DepositPolicy.from_mapping({
        "type": config["DEPOSIT_TYPE"],
        "percentage": config["DEPOSIT_PERCENTAGE"],
        "fixed_amount": config["DEPOSIT_FIXED"],
    })


def stored_deposit_policy(row) -> DepositPolicy:
    return DepositPolicy.from_mapping({
        "type": row.deposit_type,
        "percentage": row.deposit_percentage,
        "fixed_amount": row.deposit_fixed,
    })


def get_booking_settings(use_stored: bool = True) -> BookingSettings:
    """
    Build the BookingSettings value passed into the engine.

    With use_stored=False the database is not touched.
    """
    config = get_config()
    booking_settings = BookingSettings(
        deposit_policy=get_deposit_policy(),
        check_in_time=_parse_time(config["CHECK_IN_TIME"]),
        check_out_time=_parse_time(config["CHECK_OUT_TIME"]),
        weekend_days=frozenset(int(day) for day in config["WEEKEND_DAYS"]),
        currency=config["CURRENCY"],
    )
    if not use_stored:
        return booking_settings

    from apps.chalets.models import ChaletSettings

    row = ChaletSettings.load()
    if row is None:
        return booking_settings

    return BookingSettings(
        deposit_policy=stored_deposit_policy(row),
        check_in_time=row.check_in_time,
        check_out_time=row.check_out_time,
        weekend_days=booking_settings.weekend_days,
        currency=booking_settings.currency,
    )
