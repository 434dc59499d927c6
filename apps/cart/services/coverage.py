"""
Coverage optimizer.

Picks groups that jointly cover a cart with a greedy set cover: each
step takes the group whose still-uncovered products add the most
savings. The walk is a heuristic, not an exact cover.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import List, Sequence, Set, Tuple
from uuid import UUID

from apps.groups.services.snapshots import GroupSnapshot

from .matching import CartLine, MatchResult, cart_quantities


ZERO = Decimal('0.00')


class StrategyKind(str, Enum):
    SINGLE_BEST = 'single_best'
    MULTI_GROUP = 'multi_group'
    COMPLETE_COVERAGE = 'complete_coverage'


@dataclass(frozen=True)
class Strategy:
    kind: StrategyKind
    matches: Tuple[MatchResult, ...]
    total_savings: Decimal
    coverage_percent: float
    uncovered_products: Tuple[UUID, ...]

    @property
    def groups(self) -> Tuple[GroupSnapshot, ...]:
        return tuple(match.group for match in self.matches)


def _gain(match: MatchResult, uncovered: Set[UUID]) -> Decimal:
    return sum(
        (item.individual_savings for item in match.matching_items if item.product_id in uncovered),
        ZERO
    )


def _covers(match: MatchResult, uncovered: Set[UUID]) -> bool:
    return any(product_id in uncovered for product_id in match.product_ids)


def _greedy_walk(products: Sequence[UUID], matches: Sequence[MatchResult]):
    """Return the picks in order, each with the savings it added."""
    uncovered = set(products)
    remaining = list(matches)
    picks = []

    while uncovered and remaining:
        candidates = [match for match in remaining if _covers(match, uncovered)]
        if not candidates:
            break

        best = min(
            candidates,
            key=lambda match: (-_gain(match, uncovered), -match.similarity_score, str(match.group_id))
        )
        picks.append((best, _gain(best, uncovered)))
        uncovered.difference_update(best.product_ids)
        remaining.remove(best)

    return picks


def _strategy(kind, picks, products) -> Strategy:
    covered = set()
    for match, _ in picks:
        covered.update(match.product_ids)

    return Strategy(
        kind=kind,
        matches=tuple(match for match, _ in picks),
        total_savings=sum((gain for _, gain in picks), ZERO),
        coverage_percent=100.0 * len(covered) / len(products),
        uncovered_products=tuple(product_id for product_id in products if product_id not in covered),
    )


def optimize_coverage(cart: Sequence[CartLine], match_results: Sequence[MatchResult]) -> List[Strategy]:
    """
    Ranked strategies for buying the cart through groups.

    Emits the best single group and, when the greedy walk goes further,
    the combination it found: ``complete_coverage`` when every cart
    product is covered, otherwise ``multi_group`` if it took more than
    one group.

    Returns:
        Strategies by total savings, then coverage, then fewer groups.
        Empty for an empty cart or when nothing matches.
    """
    products = list(cart_quantities(cart))
    if not products:
        return []

    picks = _greedy_walk(products, match_results)
    if not picks:
        return []

    strategies = [_strategy(StrategyKind.SINGLE_BEST, picks[:1], products)]

    combined = _strategy(StrategyKind.MULTI_GROUP, picks, products)
    if not combined.uncovered_products:
        strategies.append(_strategy(StrategyKind.COMPLETE_COVERAGE, picks, products))
    elif len(picks) > 1:
        strategies.append(combined)

    return sorted(
        strategies,
        key=lambda strategy: (-strategy.total_savings, -strategy.coverage_percent, len(strategy.matches))
    )
