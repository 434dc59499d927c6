import pytest
from apps.accounts.models import User


@pytest.fixture
def user(db):
    """Create and return a shopper."""
    return User.objects.create_user(
        email='shopper@example.com',
        password='TestPass123!',
        display_name='Test Shopper',
    )


@pytest.fixture
def address_fields():
    """Required fields of a saved address."""
    return {
        'full_name': 'Test Shopper',
        'phone_number': '9999999999',
        'address_line': '1 Main Street',
        'city': 'Pune',
        'pincode': '411001',
    }
