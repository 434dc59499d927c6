import pytest
from decimal import Decimal
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User
from apps.cart.models import CartItem
from apps.catalog.models import Product, DiscountTier
from apps.groups.models import Group, GroupItem, GroupParticipant, ParticipantStatus


def make_user(email, display_name=''):
    return User.objects.create_user(
        email=email,
        password='TestPass123!',
        display_name=display_name,
    )


def make_product(name, original_price, final_price=None):
    product = Product.objects.create(name=name, original_price=Decimal(original_price))
    if final_price is not None:
        DiscountTier.objects.create(
            product=product,
            min_quantity=5,
            final_price=Decimal(final_price),
        )
    return product


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def shopper(db):
    """Create and return the user whose cart is tested."""
    return make_user('shopper@example.com', 'Shopper')


@pytest.fixture
def group_owner(db):
    """Create and return a user owning public groups."""
    return make_user('owner@example.com', 'Group Owner')


@pytest.fixture
def authenticated_client(api_client, shopper):
    """Return API client authenticated as the shopper."""
    refresh = RefreshToken.for_user(shopper)
    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return api_client


@pytest.fixture
def rice(db):
    """10.00, group price 8.00."""
    return make_product('Basmati Rice 5kg', '10.00', '8.00')


@pytest.fixture
def oil(db):
    """4.00, group price 3.00."""
    return make_product('Olive Oil 1L', '4.00', '3.00')


@pytest.fixture
def salt(db):
    """1.50 with no tiers."""
    return make_product('Salt 1kg', '1.50')


@pytest.fixture
def cart(shopper):
    """Factory filling the shopper's cart from (product, quantity) pairs."""
    def _fill(*lines):
        for product, quantity in lines:
            CartItem.objects.create(user=shopper, product=product, quantity=quantity)
        return shopper
    return _fill


@pytest.fixture
def make_group(group_owner):
    """Factory for groups holding (product, quantity) pairs."""
    def _make(name, *lines, owner=None, is_public=True, members=()):
        group = Group.objects.create(name=name, owner=owner or group_owner, is_public=is_public)
        for product, quantity in lines:
            GroupItem.objects.create(group=group, product=product, quantity=quantity)
        for member in members:
            GroupParticipant.objects.create(group=group, user=member, status=ParticipantStatus.APPROVED)
        return group
    return _make


@pytest.fixture
def members(db):
    """Four users, enough to fill a group with its owner."""
    return [make_user(f'member{i}@example.com', f'Member {i}') for i in range(4)]
