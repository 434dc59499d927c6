# Generated manually for the group-buy schema

import uuid
from decimal import Decimal
from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('accounts', '0001_initial'),
        ('catalog', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Group',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True)),
                ('is_public', models.BooleanField(default=True)),
                ('share_token', models.CharField(db_index=True, editable=False, max_length=64, unique=True)),
                ('delivery_method', models.CharField(choices=[('delivery', 'Delivery'), ('pickup', 'Pickup')], default='delivery', max_length=20)),
                ('payment_locked', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='owned_groups', to=settings.AUTH_USER_MODEL)),
                ('pickup_address', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='pickup_groups', to='accounts.useraddress')),
            ],
            options={
                'db_table': 'popular_groups',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['owner', 'created_at'], name='popular_gro_owner_i_3c1f7a_idx'),
                    models.Index(fields=['is_public', 'created_at'], name='popular_gro_is_publ_9e2d41_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='GroupItem',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('quantity', models.PositiveIntegerField(validators=[MinValueValidator(1)])),
                ('added_at', models.DateTimeField(auto_now_add=True)),
                ('group', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='groups.group')),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='group_items', to='catalog.product')),
            ],
            options={
                'db_table': 'popular_group_items',
                'ordering': ['added_at'],
                'unique_together': {('group', 'product')},
                'constraints': [
                    models.CheckConstraint(check=models.Q(quantity__gte=1), name='group_item_quantity_positive'),
                ],
            },
        ),
        migrations.CreateModel(
            name='GroupParticipant',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected')], default='pending', max_length=20)),
                ('joined_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('group', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='participants', to='groups.group')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='group_participations', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'popular_group_participants',
                'ordering': ['joined_at'],
                'unique_together': {('group', 'user')},
                'indexes': [
                    models.Index(fields=['group', 'status'], name='popular_gro_group_i_5b7e02_idx'),
                    models.Index(fields=['user', 'status'], name='popular_gro_user_id_8d4c13_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='GroupPayment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=10, validators=[MinValueValidator(Decimal('0.01'))])),
                ('status', models.CharField(choices=[('succeeded', 'Succeeded')], default='succeeded', max_length=20)),
                ('payment_reference', models.CharField(blank=True, max_length=255)),
                ('paid_at', models.DateTimeField()),
                ('group', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='payments', to='groups.group')),
                ('payer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='group_payments_made', to=settings.AUTH_USER_MODEL)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='group_payments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'popular_group_payments',
                'ordering': ['paid_at'],
                'unique_together': {('group', 'user')},
                'indexes': [
                    models.Index(fields=['group', 'status'], name='popular_gro_group_i_a61f93_idx'),
                    models.Index(fields=['payment_reference'], name='popular_gro_payment_4e8b27_idx'),
                ],
            },
        ),
    ]
