"""Tests for nightly rate rule resolution."""

from datetime import date, datetime
from uuid import uuid4

import pytest

from apps.chalets.domain.exceptions import RuleConfigurationAmbiguityError
from apps.chalets.domain.rates import RateResolver, compare_rules, precedence_key
from apps.chalets.tests.factories import make_rule

CHALET_ID = uuid4()


def test_shorter_window_wins_at_equal_priority():
    season = make_rule(date(2026, 1, 1), date(2026, 1, 31), price=150)
    holiday = make_rule(date(2026, 1, 1), date(2026, 1, 2), price=200)

    for rules in ([season, holiday], [holiday, season]):
        resolved = RateResolver(rules).resolve_nightly_rule(CHALET_ID, date(2026, 1, 1))
        assert resolved is holiday


def test_shorter_window_wins_even_when_cheaper():
    season = make_rule(date(2026, 1, 1), date(2026, 1, 31), price=150)
    promo = make_rule(date(2026, 1, 1), date(2026, 1, 2), price=90)

    for rules in ([season, promo], [promo, season]):
        resolved = RateResolver(rules).resolve_nightly_rule(CHALET_ID, date(2026, 1, 1))
        assert resolved is promo


def test_higher_priority_beats_shorter_window():
    broad = make_rule(date(2026, 1, 1), date(2026, 12, 31), price=90, priority=5)
    narrow = make_rule(date(2026, 1, 1), date(2026, 1, 3), price=300, priority=1)

    assert RateResolver([narrow, broad]).resolve_nightly_rule(CHALET_ID, date(2026, 1, 2)) is broad


def test_no_candidate_returns_none():
    rule = make_rule(date(2026, 2, 1), date(2026, 2, 10), price=150)

    assert RateResolver([rule]).resolve_nightly_rule(CHALET_ID, date(2026, 1, 15)) is None


def test_window_bounds_are_inclusive():
    rule = make_rule(date(2026, 2, 1), date(2026, 2, 10), price=150)
    resolver = RateResolver([rule])

    assert resolver.resolve_nightly_rule(CHALET_ID, date(2026, 2, 1)) is rule
    assert resolver.resolve_nightly_rule(CHALET_ID, date(2026, 2, 10)) is rule
    assert resolver.resolve_nightly_rule(CHALET_ID, date(2026, 2, 11)) is None


def test_inactive_and_foreign_rules_are_ignored():
    inactive = make_rule(date(2026, 1, 1), date(2026, 1, 31), price=150, is_active=False)
    other_chalet = make_rule(date(2026, 1, 1), date(2026, 1, 31), price=175, chalet_id=uuid4())
    global_rule = make_rule(date(2026, 1, 1), date(2026, 3, 31), price=110)

    resolved = RateResolver([inactive, other_chalet, global_rule]).resolve_nightly_rule(
        CHALET_ID, date(2026, 1, 10)
    )

    assert resolved is global_rule


def test_tie_picks_newest_and_reports_ambiguity(caplog):
    older = make_rule(date(2026, 1, 1), date(2026, 1, 5), price=150, created_at=datetime(2025, 1, 1))
    newer = make_rule(date(2026, 1, 3), date(2026, 1, 7), price=180, created_at=datetime(2025, 6, 1))
    reported = []

    resolver = RateResolver([older, newer], on_ambiguity=reported.append)
    resolved = resolver.resolve_nightly_rule(CHALET_ID, date(2026, 1, 4))

    assert resolved is newer
    assert len(reported) == 1
    assert isinstance(reported[0], RuleConfigurationAmbiguityError)
    assert set(reported[0].rule_ids) == {older.id, newer.id}
    assert reported[0].winner_id == newer.id
    assert "tie on priority and window length" in caplog.text


def test_three_way_tie_resolves_to_newest():
    rules = [
        make_rule(date(2026, 1, 1), date(2026, 1, 5), price=100 + i, created_at=datetime(2025, 1, 1 + i))
        for i in range(3)
    ]
    reported = []

    resolved = RateResolver(rules, on_ambiguity=reported.append).resolve_nightly_rule(
        CHALET_ID, date(2026, 1, 2)
    )

    assert resolved is rules[2]
    assert len(reported[0].rule_ids) == 3


def test_no_ambiguity_reported_for_clear_winner():
    reported = []
    season = make_rule(date(2026, 1, 1), date(2026, 1, 31), price=150)
    holiday = make_rule(date(2026, 1, 1), date(2026, 1, 2), price=200)

    RateResolver([season, holiday], on_ambiguity=reported.append).resolve_nightly_rule(
        CHALET_ID, date(2026, 1, 1)
    )

    assert reported == []


def test_compare_rules_orders_by_precedence():
    high = make_rule(date(2026, 1, 1), date(2026, 1, 31), price=1, priority=3)
    short = make_rule(date(2026, 1, 1), date(2026, 1, 2), price=1, priority=1)
    long = make_rule(date(2026, 1, 1), date(2026, 1, 31), price=1, priority=1)
    twin = make_rule(date(2026, 2, 1), date(2026, 3, 3), price=1, priority=1)

    assert compare_rules(high, short) == -1
    assert compare_rules(long, short) == 1
    assert compare_rules(long, twin) == 0
    assert sorted([long, short, high], key=precedence_key) == [high, short, long]


def test_find_ambiguities_reports_overlapping_twins():
    first = make_rule(date(2026, 7, 1), date(2026, 7, 10), price=150, created_at=datetime(2025, 1, 1))
    second = make_rule(date(2026, 7, 5), date(2026, 7, 14), price=160, created_at=datetime(2025, 2, 1))
    disjoint = make_rule(date(2026, 8, 1), date(2026, 8, 10), price=170)
    other_priority = make_rule(date(2026, 7, 1), date(2026, 7, 10), price=180, priority=2)

    found = RateResolver([first, second, disjoint, other_priority]).find_ambiguities()

    assert len(found) == 1
    assert found[0].night == date(2026, 7, 5)
    assert found[0].winner_id == second.id


def test_find_ambiguities_ignores_rules_of_different_chalets():
    a = make_rule(date(2026, 7, 1), date(2026, 7, 10), price=150, chalet_id=uuid4())
    b = make_rule(date(2026, 7, 1), date(2026, 7, 10), price=150, chalet_id=uuid4())

    assert RateResolver([a, b]).find_ambiguities() == []


def test_rule_needs_exactly_one_price_source():
    with pytest.raises(ValueError):
        make_rule(date(2026, 1, 1), date(2026, 1, 2))
    with pytest.raises(ValueError):
        make_rule(date(2026, 1, 1), date(2026, 1, 2), price=100, multiplier=1.5)


def test_rule_window_must_not_be_reversed():
    with pytest.raises(ValueError):
        make_rule(date(2026, 1, 5), date(2026, 1, 2), price=100)
