"""Catalog lookups used by group and cart services."""

from typing import Dict, Iterable
from uuid import UUID

from django.core.exceptions import ValidationError
from django.db.models import QuerySet

from ..models import Product
from .exceptions import ProductNotFoundError
from .pricing import ProductPricing


def get_active_products(*, search: str = None) -> QuerySet[Product]:
    """
    List active products with their tier tables.

    Args:
        search: Optional case-insensitive name filter

    Returns:
        QuerySet of Product
    """
    queryset = (
        Product.objects
        .filter(is_active=True)
        .select_related('seller')
        .prefetch_related('discount_tiers')
    )
    if search:
        queryset = queryset.filter(name__icontains=search)
    return queryset


def get_product_by_id(*, product_id: UUID) -> Product:
    """
    Get an active product by ID.

    Raises:
        ProductNotFoundError: If product doesn't exist or is inactive
    """
    try:
        return (
            Product.objects
            .prefetch_related('discount_tiers')
            .get(id=product_id, is_active=True)
        )
    except (Product.DoesNotExist, ValidationError, ValueError):
        raise ProductNotFoundError(f"Product with ID {product_id} not found")


def get_product_pricing(*, product_id: UUID) -> ProductPricing:
    """Pricing snapshot for a single product."""
    return ProductPricing.from_product(get_product_by_id(product_id=product_id))


def get_pricing_map(*, product_ids: Iterable[UUID]) -> Dict[UUID, ProductPricing]:
    """
    Pricing snapshots for many products in one query.

    Inactive products keep their pricing here: groups and carts that
    already hold them are still valued.

    Raises:
        ProductNotFoundError: If any product ID is unknown
    """
    try:
        wanted = {UUID(str(product_id)) for product_id in product_ids}
    except ValueError:
        raise ProductNotFoundError("Malformed product ID")
    if not wanted:
        return {}

    products = (
        Product.objects
        .filter(id__in=wanted)
        .prefetch_related('discount_tiers')
    )
    pricing = {product.id: ProductPricing.from_product(product) for product in products}

    missing = wanted - set(pricing)
    if missing:
        raise ProductNotFoundError(
            f"Products not found: {', '.join(sorted(str(pid) for pid in missing))}"
        )
    return pricing
