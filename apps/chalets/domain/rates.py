"""
Rate rule resolution.

Picks the one rule that governs the price of a given night. Precedence:
1. Higher priority wins
2. Shorter validity window wins (more specific)
3. Most recently created wins

A tie on (1) and (2) between the top candidates is a configuration
problem. It is reported, never raised, and (3) decides.
"""

from datetime import date
from itertools import combinations
from typing import Callable, Iterable, List
from uuid import UUID
import logging

from apps.chalets.domain.entities import RateRule
from apps.chalets.domain.exceptions import RuleConfigurationAmbiguityError

logger = logging.getLogger(__name__)

AmbiguityCallback = Callable[[RuleConfigurationAmbiguityError], None]


def precedence_key(rule: RateRule):
    """Sort key: the first rule in ascending order governs the night"""
    return (-rule.priority, rule.window_days, -rule.created_at.timestamp(), str(rule.id))


def compare_rules(a: RateRule, b: RateRule) -> int:
    """
    Three-way comparator over the precedence order.

    Returns -1 when a takes precedence, 1 when b does, 0 when they are
    indistinguishable (same priority, window and creation time).
    """
    key_a = precedence_key(a)[:3]
    key_b = precedence_key(b)[:3]
    if key_a < key_b:
        return -1
    if key_a > key_b:
        return 1
    return 0


def _same_rank(a: RateRule, b: RateRule) -> bool:
    return a.priority == b.priority and a.window_days == b.window_days


def _scopes_intersect(a: RateRule, b: RateRule) -> bool:
    return a.chalet_id is None or b.chalet_id is None or a.chalet_id == b.chalet_id


class RateResolver:
    """
    Resolves nightly rules from a snapshot of the rule catalog.

    The snapshot is taken once per pricing run so every night of a stay is
    priced against the same catalog.
    """

    def __init__(
        self,
        rules: Iterable[RateRule],
        on_ambiguity: AmbiguityCallback | None = None,
    ):
        self.rules: List[RateRule] = sorted(
            (rule for rule in rules if rule.is_active),
            key=precedence_key,
        )
        self.on_ambiguity = on_ambiguity

    def candidates(self, chalet_id: UUID, night: date) -> List[RateRule]:
        """Rules applying to the night, in precedence order"""
        return [rule for rule in self.rules if rule.applies_to(chalet_id, night)]

    def resolve_nightly_rule(self, chalet_id: UUID, night: date) -> RateRule | None:
        candidates = self.candidates(chalet_id, night)
        if not candidates:
            return None

        winner = candidates[0]
        tied = [rule for rule in candidates if _same_rank(rule, winner)]
        if len(tied) > 1:
            self._report(RuleConfigurationAmbiguityError(
                night=night,
                rule_ids=[rule.id for rule in tied],
                winner_id=winner.id,
            ))
        return winner

    def find_ambiguities(self) -> List[RuleConfigurationAmbiguityError]:
        """
        Audit the catalog for rule pairs that can tie on some night.

        A pair is ambiguous when the rules share a chalet scope, their
        windows overlap and they have equal priority and window length.
        The reported night is the first night both rules cover.
        """
        found = []
        for a, b in combinations(self.rules, 2):
            if not (_same_rank(a, b) and _scopes_intersect(a, b)):
                continue
            first_shared = max(a.start_date, b.start_date)
            if first_shared > min(a.end_date, b.end_date):
                continue
            winner = a if compare_rules(a, b) <= 0 else b
            found.append(RuleConfigurationAmbiguityError(
                night=first_shared,
                rule_ids=[a.id, b.id],
                winner_id=winner.id,
            ))
        return found

    def _report(self, error: RuleConfigurationAmbiguityError):
        logger.warning(str(error))
        if self.on_ambiguity is not None:
            self.on_ambiguity(error)
