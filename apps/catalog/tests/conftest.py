import pytest
from decimal import Decimal
from rest_framework.test import APIClient
from apps.catalog.models import Product, DiscountTier


@pytest.fixture
def api_client():
    """Catalog reads are public."""
    return APIClient()


@pytest.fixture
def product(db):
    """Product at 10.00 with tiers at 8.00 (5+) and 7.00 (10+)."""
    product = Product.objects.create(
        name='Basmati Rice 5kg',
        description='Aged long grain',
        original_price=Decimal('10.00'),
    )
    DiscountTier.objects.create(
        product=product,
        min_quantity=10,
        discount_percentage=Decimal('30.00'),
        final_price=Decimal('7.00'),
    )
    DiscountTier.objects.create(
        product=product,
        min_quantity=5,
        discount_percentage=Decimal('20.00'),
        final_price=Decimal('8.00'),
    )
    return product


@pytest.fixture
def untiered_product(db):
    return Product.objects.create(name='Salt 1kg', original_price=Decimal('1.50'))


@pytest.fixture
def inactive_product(db):
    return Product.objects.create(
        name='Discontinued Tea',
        original_price=Decimal('5.00'),
        is_active=False,
    )
