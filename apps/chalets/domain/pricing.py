"""
Stay pricing.

Every night of [check_in, check_out) is priced on its own:
- a resolved rule with a flat price sets the rate
- a resolved rule with a multiplier scales the fallback rate
- otherwise the weekend price on weekend nights, the base price on the rest

Add-ons are charged unit_price * quantity, times the number of nights for
per-night add-ons. Amounts are summed as Decimal and rounded to cents once,
at the end.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Sequence, Tuple
from uuid import UUID

from shared.domain.base import ValueObject
from shared.domain.value_objects import DateRange, Money

from apps.chalets.domain.availability import make_range
from apps.chalets.domain.entities import AddOn, BookingAddOn, Chalet, RateRule, money_sum
from apps.chalets.domain.exceptions import AddOnUnavailableError
from apps.chalets.domain.policies import BookingSettings
from apps.chalets.domain.rates import RateResolver

RATE_SOURCE_RULE = 'rule'
RATE_SOURCE_WEEKEND = 'weekend'
RATE_SOURCE_BASE = 'base'


@dataclass(frozen=True)
class NightlyRate(ValueObject):
    night: date
    amount: Money
    source: str
    rule_id: UUID | None = None


@dataclass(frozen=True)
class StayQuote(ValueObject):
    """Priced stay, before discount and deposit"""
    dates: DateRange
    base_amount: Money
    add_on_amount: Money
    nights_priced: Tuple[NightlyRate, ...] = ()
    add_on_lines: Tuple[BookingAddOn, ...] = field(default=(), compare=False)

    @property
    def nights(self) -> int:
        return len(self.dates)

    @property
    def subtotal(self) -> Money:
        return self.base_amount + self.add_on_amount


class PriceCalculator:
    """
    Pure price computation.

    The rule catalog comes in through the resolver and the weekend days
    through settings; nothing is looked up on the side.
    """

    def __init__(self, resolver: RateResolver, settings: BookingSettings | None = None):
        self.resolver = resolver
        self.settings = settings or BookingSettings()

    @classmethod
    def for_rules(cls, rules: Iterable[RateRule], settings: BookingSettings | None = None, **kwargs):
        return cls(RateResolver(rules, **kwargs), settings)

    def fallback_rate(self, chalet: Chalet, night: date) -> Tuple[Money, str]:
        if night.weekday() in self.settings.weekend_days:
            return chalet.weekend_price, RATE_SOURCE_WEEKEND
        return chalet.base_price, RATE_SOURCE_BASE

    def nightly_rate(self, chalet: Chalet, night: date) -> NightlyRate:
        rule = self.resolver.resolve_nightly_rule(chalet.id, night)
        if rule is not None and rule.price is not None:
            return NightlyRate(night, rule.price, RATE_SOURCE_RULE, rule.id)

        fallback, source = self.fallback_rate(chalet, night)
        if rule is not None:
            return NightlyRate(night, fallback * rule.price_multiplier, RATE_SOURCE_RULE, rule.id)
        return NightlyRate(night, fallback, source)

    def price_add_ons(
        self,
        add_ons: Sequence[Tuple[AddOn, int]],
        nights: int,
    ) -> List[BookingAddOn]:
        inactive = [add_on.id for add_on, _ in add_ons if not add_on.is_active]
        if inactive:
            raise AddOnUnavailableError(inactive)
        return [BookingAddOn.for_stay(add_on, quantity, nights) for add_on, quantity in add_ons]

    def compute_stay_total(
        self,
        chalet: Chalet,
        check_in: date,
        check_out: date,
        add_ons: Sequence[Tuple[AddOn, int]] = (),
    ) -> StayQuote:
        dates = make_range(check_in, check_out)
        currency = chalet.currency

        nights_priced = tuple(self.nightly_rate(chalet, night) for night in dates.nights())
        base_amount = money_sum((rate.amount for rate in nights_priced), currency)

        lines = self.price_add_ons(add_ons, len(dates))
        add_on_amount = money_sum((line.subtotal for line in lines), currency)

        return StayQuote(
            dates=dates,
            base_amount=base_amount.quantize(),
            add_on_amount=add_on_amount.quantize(),
            nights_priced=nights_priced,
            add_on_lines=tuple(lines),
        )
