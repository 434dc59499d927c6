"""
Pricing resolver.

Resolves the unit price a product sells at inside a popular group.
The active tier is always the first entry of the product's tier list
(ordered by ``min_quantity``); the requested quantity does not take
part in tier selection.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Tuple
from uuid import UUID

from .exceptions import InvalidQuantityError


ZERO = Decimal('0.00')


@dataclass(frozen=True)
class TierPricing:
    min_quantity: int
    final_price: Decimal


@dataclass(frozen=True)
class ProductPricing:
    """Snapshot of a product's price table."""

    product_id: UUID
    original_price: Decimal
    tiers: Tuple[TierPricing, ...] = ()

    @classmethod
    def from_product(cls, product) -> 'ProductPricing':
        tiers = tuple(
            TierPricing(min_quantity=tier.min_quantity, final_price=tier.final_price)
            for tier in product.discount_tiers.all()
        )
        return cls(
            product_id=product.id,
            original_price=product.original_price,
            tiers=tiers,
        )

    @property
    def active_tier(self) -> Optional[TierPricing]:
        return self.tiers[0] if self.tiers else None


@dataclass(frozen=True)
class PriceQuote:
    product_id: UUID
    quantity: int
    original_price: Decimal
    unit_price: Decimal
    total_price: Decimal
    unit_savings: Decimal
    savings: Decimal
    tier: Optional[TierPricing] = None


def resolve_price(pricing: ProductPricing, quantity: int) -> PriceQuote:
    """
    Resolve unit price, total and savings for a quantity.

    Args:
        pricing: Product price table
        quantity: Number of units (positive integer)

    Returns:
        PriceQuote with savings floored at zero

    Raises:
        InvalidQuantityError: If quantity is not a positive integer
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidQuantityError(f"Quantity must be a positive integer, got {quantity!r}")

    tier = pricing.active_tier
    unit_price = tier.final_price if tier is not None else pricing.original_price

    # A tier priced above the original price reports zero savings
    unit_savings = max(ZERO, pricing.original_price - unit_price)

    return PriceQuote(
        product_id=pricing.product_id,
        quantity=quantity,
        original_price=pricing.original_price,
        unit_price=unit_price,
        total_price=unit_price * quantity,
        unit_savings=unit_savings,
        savings=unit_savings * quantity,
        tier=tier,
    )
