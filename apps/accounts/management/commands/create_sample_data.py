"""
Management command to create sample data for trying out the API.

Usage:
    python manage.py create_sample_data

This creates:
- 6 users (admin, alice, bob, charlie, dana, eve)
- A pickup address for alice
- 8 catalog products, most with discount tiers
- 3 popular groups (one full, one open, one private pickup group)
- Carts for charlie and eve that overlap the public groups
"""

from django.core.management.base import BaseCommand
from django.db import transaction
from decimal import Decimal

from apps.accounts.models import User, UserAddress
from apps.cart.models import CartItem
from apps.catalog.models import Product, DiscountTier
from apps.groups.models import Group, DeliveryMethod
from apps.groups.services import approve_participant, create_group, request_join


PRODUCTS = [
    # name, original price, [(min_quantity, discount %, final price), ...]
    ('Basmati Rice 5kg', '10.00', [(5, '20.00', '8.00'), (10, '30.00', '7.00')]),
    ('Olive Oil 1L', '4.00', [(5, '25.00', '3.00')]),
    ('Toor Dal 1kg', '2.40', [(5, '12.50', '2.10')]),
    ('Green Tea 100 bags', '6.50', [(5, '15.38', '5.50')]),
    ('Almonds 500g', '9.00', [(5, '22.22', '7.00')]),
    ('Dish Soap 750ml', '3.20', [(5, '18.75', '2.60')]),
    ('Laundry Detergent 2kg', '7.80', [(5, '23.08', '6.00')]),
    ('Sea Salt 1kg', '1.50', []),
]


class Command(BaseCommand):
    help = 'Create sample data for trying out the API'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing data before creating new sample data',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        if options['clear']:
            self.stdout.write('Clearing existing data...')
            self.clear_data()

        self.stdout.write('Creating sample data...')

        users = self.create_users()
        products = self.create_products(users['admin'])
        groups = self.create_groups(users, products)
        self.create_carts(users, products)

        self.stdout.write(self.style.SUCCESS('Sample data created successfully!'))
        self.stdout.write('')
        self.stdout.write(f"Groups: {', '.join(group.name for group in groups.values())}")
        self.stdout.write('Test accounts:')
        self.stdout.write('  admin@example.com / admin123 (superuser)')
        for name in ('alice', 'bob', 'charlie', 'dana', 'eve'):
            self.stdout.write(f'  {name}@example.com / password123')

    def clear_data(self):
        """Clear all data from the database."""
        CartItem.objects.all().delete()
        Group.objects.all().delete()
        Product.objects.all().delete()
        UserAddress.objects.all().delete()
        User.objects.filter(is_superuser=False).delete()

    def create_users(self):
        """Create test users."""
        self.stdout.write('  Creating users...')

        admin, _ = User.objects.get_or_create(
            email='admin@example.com',
            defaults={
                'display_name': 'Admin User',
                'is_staff': True,
                'is_superuser': True,
                'is_seller': True,
            }
        )
        admin.set_password('admin123')
        admin.save()

        users = {'admin': admin}
        for name in ('alice', 'bob', 'charlie', 'dana', 'eve'):
            user, _ = User.objects.get_or_create(
                email=f'{name}@example.com',
                defaults={'display_name': name.capitalize()}
            )
            user.set_password('password123')
            user.save()
            users[name] = user

        return users

    def create_products(self, seller):
        """Create catalog products with their tier tables."""
        self.stdout.write('  Creating products...')

        products = {}
        for name, price, tiers in PRODUCTS:
            product, created = Product.objects.get_or_create(
                name=name,
                defaults={'original_price': Decimal(price), 'seller': seller}
            )
            if created:
                for min_quantity, discount, final_price in tiers:
                    DiscountTier.objects.create(
                        product=product,
                        min_quantity=min_quantity,
                        discount_percentage=Decimal(discount),
                        final_price=Decimal(final_price),
                    )
            products[name] = product

        return products

    def create_groups(self, users, products):
        """Create groups through the group services."""
        self.stdout.write('  Creating groups...')

        def items(*names):
            return [(products[name].id, 5) for name in names]

        staples = Group.objects.filter(name='Weekly Staples').first()
        if staples is None:
            staples = create_group(
                name='Weekly Staples',
                description='Rice, oil and dal for the building',
                owner=users['alice'],
                items=items('Basmati Rice 5kg', 'Olive Oil 1L', 'Toor Dal 1kg'),
            )
            # Fill it up: alice plus four approved participants
            for name in ('bob', 'charlie', 'dana', 'eve'):
                request_join(group_id=staples.id, user=users[name])
                approve_participant(group_id=staples.id, user_id=users[name].id, approved_by=users['alice'])

        pantry = Group.objects.filter(name='Healthy Pantry').first()
        if pantry is None:
            pantry = create_group(
                name='Healthy Pantry',
                description='Tea and nuts in bulk',
                owner=users['bob'],
                items=items('Green Tea 100 bags', 'Almonds 500g', 'Olive Oil 1L'),
            )
            request_join(group_id=pantry.id, user=users['dana'])

        household = Group.objects.filter(name='Household Basics').first()
        if household is None:
            address, _ = UserAddress.objects.get_or_create(
                user=users['dana'],
                nickname='Home',
                defaults={
                    'full_name': 'Dana',
                    'phone_number': '9876543210',
                    'address_line': '4 Lake View Road',
                    'city': 'Bengaluru',
                    'pincode': '560001',
                    'is_default': True,
                }
            )
            household = create_group(
                name='Household Basics',
                owner=users['dana'],
                is_public=False,
                delivery_method=DeliveryMethod.PICKUP,
                pickup_address_id=address.id,
                items=items('Dish Soap 750ml', 'Laundry Detergent 2kg'),
            )

        return {
            'staples': staples,
            'pantry': pantry,
            'household': household,
        }

    def create_carts(self, users, products):
        """Create carts that overlap the public groups."""
        self.stdout.write('  Creating carts...')

        carts = {
            'charlie': [('Olive Oil 1L', 2), ('Almonds 500g', 1), ('Sea Salt 1kg', 3)],
            'eve': [('Green Tea 100 bags', 2), ('Basmati Rice 5kg', 1)],
        }
        for name, lines in carts.items():
            for product_name, quantity in lines:
                CartItem.objects.get_or_create(
                    user=users[name],
                    product=products[product_name],
                    defaults={'quantity': quantity}
                )
