"""Services for cart business logic and group recommendations."""

from .exceptions import (
    CartServiceError,
    CartItemNotFoundError,
    ProductUnavailableError,
    InvalidQuantityError,
)
from .matching import (
    CartLine,
    MatchingItem,
    MatchResult,
    similarity_score,
    match_cart,
    rank_matches,
)
from .coverage import (
    Strategy,
    StrategyKind,
    optimize_coverage,
)
from .cart_management import (
    get_cart,
    get_cart_lines,
    add_to_cart,
    update_cart_item,
    remove_from_cart,
    clear_cart,
)
from .recommendations import (
    find_similar_groups,
    get_optimization_suggestions,
)

__all__ = [
    # Exceptions
    'CartServiceError',
    'CartItemNotFoundError',
    'ProductUnavailableError',
    'InvalidQuantityError',
    # Matching
    'CartLine',
    'MatchingItem',
    'MatchResult',
    'similarity_score',
    'match_cart',
    'rank_matches',
    # Coverage
    'Strategy',
    'StrategyKind',
    'optimize_coverage',
    # Cart
    'get_cart',
    'get_cart_lines',
    'add_to_cart',
    'update_cart_item',
    'remove_from_cart',
    'clear_cart',
    # Recommendations
    'find_similar_groups',
    'get_optimization_suggestions',
]
