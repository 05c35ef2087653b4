"""
Booking configuration value objects.

Deposit policy and operating settings are passed explicitly into the
calculators instead of being read from global state.
"""

from dataclasses import dataclass, field
from datetime import time
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Mapping

from shared.domain.base import ValueObject
from shared.domain.value_objects import SUPPORTED_CURRENCIES, to_decimal

from apps.chalets.domain.exceptions import InvalidPolicyError

# Friday and Saturday nights (date.weekday() numbering)
DEFAULT_WEEKEND_DAYS = frozenset({4, 5})


class DepositType(Enum):
    PERCENTAGE = 'percentage'
    FIXED = 'fixed'


@dataclass(frozen=True)
class DepositPolicy(ValueObject):
    """
    How much of the total is taken upfront.

    percentage: deposit = total * percentage / 100
    fixed: deposit = min(fixed_amount, total)
    """
    type: DepositType | str
    percentage: Decimal | None = None
    fixed_amount: Decimal | None = None

    def __post_init__(self):
        for name in ('percentage', 'fixed_amount'):
            value = getattr(self, name)
            if value is None:
                continue
            try:
                object.__setattr__(self, name, to_decimal(value))
            except (InvalidOperation, TypeError, ValueError):
                raise InvalidPolicyError(f"Deposit {name} is not a number: {value!r}") from None

    @classmethod
    def percentage_of(cls, percentage) -> 'DepositPolicy':
        return cls(DepositType.PERCENTAGE, percentage=Decimal(str(percentage)))

    @classmethod
    def fixed(cls, amount) -> 'DepositPolicy':
        return cls(DepositType.FIXED, fixed_amount=Decimal(str(amount)))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'DepositPolicy':
        """
        Build a policy from raw configuration.

        Accepts {'type': 'percentage', 'percentage': 30} or
        {'type': 'fixed', 'fixed_amount': 100}; numbers may be strings.
        """
        raw_type = data.get('type', DepositType.PERCENTAGE.value)
        try:
            deposit_type = DepositType(raw_type)
        except ValueError:
            raise InvalidPolicyError(f"Unknown deposit type: {raw_type!r}") from None

        def _decimal(key):
            value = data.get(key)
            if value is None or value == '':
                return None
            try:
                return Decimal(str(value))
            except (InvalidOperation, ValueError):
                raise InvalidPolicyError(f"Deposit {key} is not a number: {value!r}") from None

        policy = cls(
            deposit_type,
            percentage=_decimal('percentage'),
            fixed_amount=_decimal('fixed_amount'),
        )
        policy.validate()
        return policy

    @property
    def deposit_type(self) -> DepositType:
        if isinstance(self.type, DepositType):
            return self.type
        try:
            return DepositType(self.type)
        except ValueError:
            raise InvalidPolicyError(f"Unknown deposit type: {self.type!r}") from None

    def validate(self) -> None:
        deposit_type = self.deposit_type
        if deposit_type == DepositType.PERCENTAGE:
            if self.percentage is None:
                raise InvalidPolicyError("Percentage deposit policy needs a percentage")
            if not Decimal('0') <= self.percentage <= Decimal('100'):
                raise InvalidPolicyError(
                    f"Deposit percentage must be between 0 and 100, got {self.percentage}"
                )
        else:
            if self.fixed_amount is None:
                raise InvalidPolicyError("Fixed deposit policy needs an amount")
            if self.fixed_amount < 0:
                raise InvalidPolicyError(
                    f"Fixed deposit cannot be negative, got {self.fixed_amount}"
                )


@dataclass(frozen=True)
class BookingSettings(ValueObject):
    """Operating settings for the reservation engine."""
    deposit_policy: DepositPolicy = field(
        default_factory=lambda: DepositPolicy.percentage_of(30)
    )
    check_in_time: time = time(14, 0)
    check_out_time: time = time(11, 0)
    weekend_days: frozenset = DEFAULT_WEEKEND_DAYS
    currency: str = 'USD'

    def __post_init__(self):
        if not set(self.weekend_days) <= set(range(7)):
            raise ValueError(f"Weekend days must be weekday numbers 0-6, got {sorted(self.weekend_days)}")
        if self.currency not in SUPPORTED_CURRENCIES:
            raise ValueError(f"Unsupported currency: {self.currency}")
        object.__setattr__(self, 'weekend_days', frozenset(self.weekend_days))

