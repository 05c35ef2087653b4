from datetime import datetime
from decimal import Decimal

from shared.domain.value_objects import DateRange, Money

from apps.chalets.domain.entities import Booking, BookingStatus, RateRule


def usd(amount) -> Money:
    return Money(Decimal(str(amount)), 'USD')


def make_rule(start, end, price=None, priority=1, chalet_id=None, multiplier=None, created_at=None, **kwargs):
    return RateRule(
        chalet_id=chalet_id,
        name=kwargs.pop('name', f"{start} - {end}"),
        start_date=start,
        end_date=end,
        price=usd(price) if price is not None else None,
        price_multiplier=Decimal(str(multiplier)) if multiplier is not None else None,
        priority=priority,
        created_at=created_at or datetime(2025, 6, 1, 12, 0),
        **kwargs,
    )


def make_booking(chalet_id, check_in, check_out, status=BookingStatus.PENDING, **kwargs):
    return Booking(
        chalet_id=chalet_id,
        dates=DateRange(check_in, check_out),
        guests_count=kwargs.pop('guests_count', 2),
        base_amount=usd(100),
        add_on_amount=usd(0),
        discount_amount=usd(0),
        deposit_amount=usd(30),
        total_amount=usd(100),
        status=status,
        **kwargs,
    )
