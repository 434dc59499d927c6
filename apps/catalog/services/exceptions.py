"""Domain-specific exceptions for catalog services."""


class CatalogServiceError(Exception):
    """Base exception for catalog services."""
    pass


class ProductNotFoundError(CatalogServiceError):
    """Raised when a product does not exist or is inactive."""
    pass


class InvalidQuantityError(CatalogServiceError):
    """Raised when a quantity is not a positive integer."""
    pass
