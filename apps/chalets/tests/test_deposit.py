"""Tests for deposit policies and computation."""

from decimal import Decimal

import pytest

from apps.chalets.domain.deposit import DepositCalculator, compute_deposit
from apps.chalets.domain.exceptions import InvalidPolicyError
from apps.chalets.domain.policies import DepositPolicy, DepositType
from apps.chalets.tests.factories import usd


def test_percentage_deposit():
    assert compute_deposit(Decimal('200'), DepositPolicy.percentage_of(30)) == Decimal('60.00')


def test_fixed_deposit_is_capped_at_total():
    assert compute_deposit(Decimal('200'), DepositPolicy.fixed(500)) == Decimal('200.00')


def test_fixed_deposit_below_total():
    assert compute_deposit(Decimal('850'), DepositPolicy.fixed(100)) == Decimal('100.00')


def test_percentage_rounds_half_up_to_cents():
    # 33.35 * 15% = 5.0025 -> 5.00; 100.10 * 15% = 15.015 -> 15.02
    policy = DepositPolicy.percentage_of(15)

    assert compute_deposit(Decimal('33.35'), policy) == Decimal('5.00')
    assert compute_deposit(Decimal('100.10'), policy) == Decimal('15.02')


@pytest.mark.parametrize("percentage", [0, 100])
def test_percentage_bounds_are_valid(percentage):
    expected = Decimal('200') * percentage / 100
    assert compute_deposit(Decimal('200'), DepositPolicy.percentage_of(percentage)) == expected


@pytest.mark.parametrize("policy", [
    DepositPolicy(DepositType.PERCENTAGE, percentage=Decimal('101')),
    DepositPolicy(DepositType.PERCENTAGE, percentage=Decimal('-5')),
    DepositPolicy(DepositType.PERCENTAGE),
    DepositPolicy(DepositType.FIXED, fixed_amount=Decimal('-1')),
    DepositPolicy(DepositType.FIXED),
    DepositPolicy('instalments', percentage=Decimal('30')),
])
def test_invalid_policies_are_rejected(policy):
    with pytest.raises(InvalidPolicyError):
        compute_deposit(Decimal('200'), policy)


def test_policy_from_mapping_accepts_strings():
    policy = DepositPolicy.from_mapping({'type': 'fixed', 'fixed_amount': '250.50'})

    assert policy.deposit_type == DepositType.FIXED
    assert policy.fixed_amount == Decimal('250.50')


def test_policy_from_mapping_rejects_garbage():
    with pytest.raises(InvalidPolicyError):
        DepositPolicy.from_mapping({'type': 'percentage', 'percentage': 'thirty'})


def test_calculator_returns_money_in_total_currency():
    calculator = DepositCalculator(DepositPolicy.percentage_of(30))

    assert calculator.compute(usd(200)) == usd(60)


def test_calculator_validates_policy_upfront():
    with pytest.raises(InvalidPolicyError):
        DepositCalculator(DepositPolicy(DepositType.FIXED))


def test_float_values_are_converted_to_decimal():
    policy = DepositPolicy(DepositType.PERCENTAGE, percentage=12.5)

    assert policy.percentage == Decimal('12.5')
    assert compute_deposit(Decimal('200'), policy) == Decimal('25.00')
    assert compute_deposit(Decimal('200'), DepositPolicy(DepositType.FIXED, fixed_amount=49.99)) == Decimal('49.99')


def test_non_numeric_values_are_rejected_at_construction():
    with pytest.raises(InvalidPolicyError):
        DepositPolicy(DepositType.PERCENTAGE, percentage='thirty')
