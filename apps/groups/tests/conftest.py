import pytest
from decimal import Decimal
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User, UserAddress
from apps.catalog.models import Product, DiscountTier
from apps.groups.models import Group, GroupItem, GroupParticipant, ParticipantStatus


def make_user(email, display_name=''):
    return User.objects.create_user(
        email=email,
        password='TestPass123!',
        display_name=display_name,
    )


def authenticate(client, user):
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def group_owner(db):
    """Create and return a test user (group owner)."""
    return make_user('owner@example.com', 'Group Owner')


@pytest.fixture
def member_user(db):
    """Create and return a user who will be approved into the group."""
    return make_user('member@example.com', 'Group Member')


@pytest.fixture
def shopper(db):
    """Create and return a user not in any group."""
    return make_user('shopper@example.com', 'Shopper')


@pytest.fixture
def make_users(db):
    """Factory for batches of users."""
    def _make(count, prefix='user'):
        return [make_user(f'{prefix}{i}@example.com', f'User {i}') for i in range(count)]
    return _make


@pytest.fixture
def client_for(db):
    """Factory for a separate API client per user."""
    def _client(user):
        return authenticate(APIClient(), user)
    return _client


@pytest.fixture
def owner_client(api_client, group_owner):
    """Return API client authenticated as group owner."""
    return authenticate(api_client, group_owner)


@pytest.fixture
def member_client(api_client, member_user):
    """Return API client authenticated as an approved member."""
    return authenticate(api_client, member_user)


@pytest.fixture
def shopper_client(api_client, shopper):
    """Return API client authenticated as a non-member."""
    return authenticate(api_client, shopper)


@pytest.fixture
def product(db):
    """Product at 10.00 with a first tier at 8.00."""
    product = Product.objects.create(name='Basmati Rice 5kg', original_price=Decimal('10.00'))
    DiscountTier.objects.create(
        product=product,
        min_quantity=5,
        discount_percentage=Decimal('20.00'),
        final_price=Decimal('8.00'),
    )
    return product


@pytest.fixture
def other_product(db):
    """Product at 4.00 with a first tier at 3.00."""
    product = Product.objects.create(name='Olive Oil 1L', original_price=Decimal('4.00'))
    DiscountTier.objects.create(
        product=product,
        min_quantity=5,
        discount_percentage=Decimal('25.00'),
        final_price=Decimal('3.00'),
    )
    return product


@pytest.fixture
def untiered_product(db):
    """Product without a discount table."""
    return Product.objects.create(name='Salt 1kg', original_price=Decimal('1.50'))


@pytest.fixture
def pickup_address(db, group_owner):
    return UserAddress.objects.create(
        user=group_owner,
        nickname='Home',
        full_name='Group Owner',
        phone_number='9999999999',
        address_line='12 Market Road',
        city='Pune',
        pincode='411001',
    )


@pytest.fixture
def group(db, group_owner):
    """Create and return an empty public group."""
    return Group.objects.create(
        name='Weekly Groceries',
        description='Staples for the building',
        owner=group_owner,
    )


@pytest.fixture
def private_group(db, group_owner):
    """Create and return a private group."""
    return Group.objects.create(
        name='Family Order',
        owner=group_owner,
        is_public=False,
    )


@pytest.fixture
def group_with_item(group, product):
    """Group holding 3 units of the tiered product."""
    GroupItem.objects.create(group=group, product=product, quantity=3)
    return group


@pytest.fixture
def approve(db):
    """Add users straight to approved, bypassing the state machine."""
    def _approve(group, *users):
        for user in users:
            GroupParticipant.objects.create(group=group, user=user, status=ParticipantStatus.APPROVED)
        return group
    return _approve


@pytest.fixture
def group_with_member(group_with_item, member_user, approve):
    """Group with an item, the owner and one approved member."""
    return approve(group_with_item, member_user)


@pytest.fixture
def full_group(group_with_item, member_user, make_users, approve):
    """Group with the owner and four approved participants."""
    return approve(group_with_item, member_user, *make_users(3, prefix='full'))
