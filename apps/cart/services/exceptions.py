"""Domain-specific exceptions for cart services."""

from apps.catalog.services.exceptions import InvalidQuantityError


class CartServiceError(Exception):
    """Base exception for cart services."""
    pass


class CartItemNotFoundError(CartServiceError):
    """Raised when a product is not in the user's cart."""
    pass


class ProductUnavailableError(CartServiceError):
    """Raised when adding a product that is unknown or inactive."""
    pass


__all__ = [
    'CartServiceError',
    'CartItemNotFoundError',
    'ProductUnavailableError',
    'InvalidQuantityError',
]
