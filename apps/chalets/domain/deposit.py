"""Deposit computation."""

from decimal import Decimal

from shared.domain.value_objects import Money, quantize_amount, to_decimal

from apps.chalets.domain.policies import DepositPolicy, DepositType

HUNDRED = Decimal('100')


def compute_deposit(total_amount, policy: DepositPolicy) -> Decimal:
    """
    Deposit due for a booking total.

    percentage: total * percentage / 100, rounded half-up to cents
    fixed: min(fixed_amount, total)
    """
    total = to_decimal(total_amount)
    if total < 0:
        raise ValueError(f"Cannot compute a deposit for a negative total ({total})")

    policy.validate()
    if policy.deposit_type == DepositType.PERCENTAGE:
        return quantize_amount(total * policy.percentage / HUNDRED)
    return quantize_amount(min(policy.fixed_amount, total))


class DepositCalculator:

    def __init__(self, policy: DepositPolicy):
        policy.validate()
        self.policy = policy

    def compute(self, total: Money) -> Money:
        return Money(compute_deposit(total.amount, self.policy), total.currency)
