"""
Cart management service.

A cart holds at most one line per product; adding a product that is
already present tops up its quantity.
"""

import logging
from typing import List
from uuid import UUID

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F, QuerySet

from apps.accounts.models import User
from apps.cart.models import CartItem
from apps.catalog.services import ProductNotFoundError, get_product_by_id

from .exceptions import CartItemNotFoundError, InvalidQuantityError, ProductUnavailableError
from .matching import CartLine

logger = logging.getLogger(__name__)


def get_cart(*, user: User) -> QuerySet[CartItem]:
    """Cart items with products and tiers loaded, oldest first."""
    return (
        CartItem.objects
        .filter(user=user)
        .select_related('product')
        .prefetch_related('product__discount_tiers')
    )


def get_cart_lines(*, user: User) -> List[CartLine]:
    """The cart as plain (product_id, quantity) lines."""
    return [
        CartLine(product_id=product_id, quantity=quantity)
        for product_id, quantity in (
            CartItem.objects
            .filter(user=user)
            .values_list('product_id', 'quantity')
        )
    ]


@transaction.atomic
def add_to_cart(*, user: User, product_id: UUID, quantity: int = 1) -> CartItem:
    """
    Add a product to the cart or top up its quantity.

    Raises:
        InvalidQuantityError: If quantity < 1
        ProductUnavailableError: If the product is unknown or inactive
    """
    if quantity < 1:
        raise InvalidQuantityError(f"Quantity must be at least 1, got {quantity}")

    try:
        product = get_product_by_id(product_id=product_id)
    except ProductNotFoundError as exc:
        raise ProductUnavailableError(str(exc)) from exc

    item, created = CartItem.objects.select_for_update().get_or_create(
        user=user,
        product=product,
        defaults={'quantity': quantity}
    )
    if not created:
        CartItem.objects.filter(id=item.id).update(quantity=F('quantity') + quantity)
        item.refresh_from_db(fields=['quantity'])

    logger.info("Cart of %s: %s x%d", user.id, product.id, item.quantity)
    return item


@transaction.atomic
def update_cart_item(*, user: User, product_id: UUID, quantity: int):
    """
    Set the quantity of a cart line; zero or less removes it.

    Returns:
        Updated CartItem, or None when the line was removed

    Raises:
        CartItemNotFoundError: If the product is not in the cart
    """
    try:
        item = CartItem.objects.select_for_update().get(user=user, product_id=product_id)
    except (CartItem.DoesNotExist, ValidationError, ValueError):
        raise CartItemNotFoundError(f"Product {product_id} is not in the cart")

    if quantity <= 0:
        item.delete()
        return None

    item.quantity = quantity
    item.save(update_fields=['quantity'])
    return item


def remove_from_cart(*, user: User, product_id: UUID) -> bool:
    """Remove a product from the cart. Absent products are a no-op."""
    try:
        deleted, _ = CartItem.objects.filter(user=user, product_id=product_id).delete()
    except ValidationError:
        return False
    return bool(deleted)


def clear_cart(*, user: User) -> int:
    """Remove every line of the cart and return how many were removed."""
    deleted, _ = CartItem.objects.filter(user=user).delete()
    if deleted:
        logger.info("Cleared %d cart items for %s", deleted, user.id)
    return deleted
