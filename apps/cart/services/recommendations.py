"""
Cart recommendations.

Loads the user's cart and public group snapshots, then runs the pure
matcher and optimizer over them. Plain reads only; group row locks are
never taken here.
"""

import logging
from typing import List

from apps.accounts.models import User
from apps.catalog.services import get_pricing_map
from apps.groups.services.snapshots import get_public_group_snapshots, product_ids_of

from .cart_management import get_cart_lines
from .coverage import Strategy, optimize_coverage
from .matching import MatchResult, match_cart, rank_matches

logger = logging.getLogger(__name__)


def _match_public_groups(user: User):
    cart = get_cart_lines(user=user)
    if not cart:
        return cart, []

    cart_products = {line.product_id for line in cart}
    snapshots = [
        snapshot
        for snapshot in get_public_group_snapshots()
        if cart_products.intersection(snapshot.items)
    ]
    pricing = get_pricing_map(product_ids=product_ids_of(snapshots))
    return cart, match_cart(cart, snapshots, pricing, user_id=user.id)


def find_similar_groups(*, user: User) -> List[MatchResult]:
    """
    Public groups sharing products with the user's cart, best first.

    Returns:
        MatchResults ranked by similarity, then savings
    """
    _, matches = _match_public_groups(user)
    logger.debug("Found %d similar groups for %s", len(matches), user.id)
    return rank_matches(matches)


def get_optimization_suggestions(*, user: User) -> List[Strategy]:
    """
    Ways to buy the user's cart through public groups.

    Full groups the user does not belong to cannot be joined and are
    left out.
    """
    cart, matches = _match_public_groups(user)
    joinable = [
        match for match in matches
        if match.is_already_member or not match.is_full
    ]
    strategies = optimize_coverage(cart, joinable)
    logger.debug("Built %d strategies for %s", len(strategies), user.id)
    return strategies
