"""Services for catalog business logic."""

from .exceptions import (
    CatalogServiceError,
    ProductNotFoundError,
    InvalidQuantityError,
)
from .pricing import (
    TierPricing,
    ProductPricing,
    PriceQuote,
    resolve_price,
)
from .product_lookup import (
    get_active_products,
    get_product_by_id,
    get_product_pricing,
    get_pricing_map,
)

__all__ = [
    # Exceptions
    'CatalogServiceError',
    'ProductNotFoundError',
    'InvalidQuantityError',
    # Pricing
    'TierPricing',
    'ProductPricing',
    'PriceQuote',
    'resolve_price',
    # Lookups
    'get_active_products',
    'get_product_by_id',
    'get_product_pricing',
    'get_pricing_map',
]
