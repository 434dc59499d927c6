"""
Cart matcher.

Scores how well each candidate group covers a shopper's cart and what
joining it would save. Works on snapshots only: no queries, no locks.

The similarity score is the share of the cart's distinct products that
the group also holds; extra products in the group do not lower it.
Savings use the group's per-unit discount times the quantity the
shopper wants, not the group's own quantity.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
from uuid import UUID

from apps.catalog.services import ProductPricing, resolve_price
from apps.groups.services.snapshots import GroupSnapshot


ZERO = Decimal('0.00')


@dataclass(frozen=True)
class CartLine:
    product_id: UUID
    quantity: int


@dataclass(frozen=True)
class MatchingItem:
    product_id: UUID
    cart_quantity: int
    group_quantity: int
    individual_savings: Decimal


@dataclass(frozen=True)
class MatchResult:
    group: GroupSnapshot
    similarity_score: float
    matching_items: Tuple[MatchingItem, ...]
    potential_savings: Decimal
    is_already_member: bool = False
    is_full: bool = False

    @property
    def group_id(self) -> UUID:
        return self.group.group_id

    @property
    def product_ids(self) -> Tuple[UUID, ...]:
        return tuple(item.product_id for item in self.matching_items)


def cart_quantities(cart: Iterable[CartLine]) -> Dict[UUID, int]:
    """Quantity per distinct product, in cart order."""
    quantities: Dict[UUID, int] = {}
    for line in cart:
        quantities[line.product_id] = quantities.get(line.product_id, 0) + line.quantity
    return quantities


def similarity_score(cart: Iterable[CartLine], group: GroupSnapshot) -> float:
    """Percentage of the cart's distinct products present in the group."""
    products = cart_quantities(cart)
    if not products:
        return 0.0
    matching = sum(1 for product_id in products if product_id in group.items)
    return 100.0 * matching / len(products)


def match_cart(
    cart: Sequence[CartLine],
    candidate_groups: Iterable[GroupSnapshot],
    pricing: Mapping[UUID, ProductPricing],
    user_id: Optional[UUID] = None
) -> List[MatchResult]:
    """
    Match a cart against candidate groups.

    Args:
        cart: Cart lines
        candidate_groups: Group snapshots to score
        pricing: Pricing for every product held by both cart and groups
        user_id: Requesting shopper, for membership flags

    Returns:
        One MatchResult per group sharing at least one product with
        the cart, in candidate order
    """
    products = cart_quantities(cart)
    if not products:
        return []

    results = []
    for group in candidate_groups:
        matching_items = []
        for product_id, cart_quantity in products.items():
            group_quantity = group.items.get(product_id)
            if group_quantity is None:
                continue
            quote = resolve_price(pricing[product_id], group_quantity)
            matching_items.append(MatchingItem(
                product_id=product_id,
                cart_quantity=cart_quantity,
                group_quantity=group_quantity,
                individual_savings=quote.unit_savings * cart_quantity,
            ))

        if not matching_items:
            continue

        results.append(MatchResult(
            group=group,
            similarity_score=100.0 * len(matching_items) / len(products),
            matching_items=tuple(matching_items),
            potential_savings=sum((item.individual_savings for item in matching_items), ZERO),
            is_already_member=group.has_member(user_id),
            is_full=group.is_full,
        ))
    return results


def rank_matches(results: Iterable[MatchResult]) -> List[MatchResult]:
    """Best matches first: similarity, then savings, then group id."""
    return sorted(
        results,
        key=lambda result: (-result.similarity_score, -result.potential_savings, str(result.group_id))
    )
