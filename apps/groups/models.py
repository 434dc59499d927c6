from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from decimal import Decimal
import uuid
import secrets

# Owner included; reaching it locks capacity and opens payment
MAX_GROUP_MEMBERS = 5


def generate_share_token():
    return secrets.token_urlsafe(settings.GROUPBUY_SHARE_TOKEN_BYTES)


class DeliveryMethod(models.TextChoices):
    DELIVERY = 'delivery', 'Delivery'
    PICKUP = 'pickup', 'Pickup'


class ParticipantStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    APPROVED = 'approved', 'Approved'
    REJECTED = 'rejected', 'Rejected'


class PaymentStatus(models.TextChoices):
    SUCCEEDED = 'succeeded', 'Succeeded'


class Group(models.Model):
    """Popular group: a shared cart that unlocks group pricing at five members."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    is_public = models.BooleanField(default=True)
    share_token = models.CharField(max_length=64, unique=True, db_index=True, editable=False)
    owner = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='owned_groups')
    delivery_method = models.CharField(
        max_length=20,
        choices=DeliveryMethod.choices,
        default=DeliveryMethod.DELIVERY
    )
    pickup_address = models.ForeignKey(
        'accounts.UserAddress',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='pickup_groups'
    )
    # Set by the first successful payment, never cleared
    payment_locked = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'popular_groups'
        indexes = [
            models.Index(fields=['owner', 'created_at'], name='popular_gro_owner_i_3c1f7a_idx'),
            models.Index(fields=['is_public', 'created_at'], name='popular_gro_is_publ_9e2d41_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.share_token:
            self.share_token = generate_share_token()
        super().save(*args, **kwargs)

    def is_owner(self, user):
        return self.owner_id == getattr(user, 'id', user)

    def get_participant_status(self, user):
        user_id = getattr(user, 'id', user)
        try:
            return self.participants.get(user_id=user_id).status
        except GroupParticipant.DoesNotExist:
            return None

    def has_member(self, user):
        """Owner or approved participant."""
        if self.is_owner(user):
            return True
        return self.get_participant_status(user) == ParticipantStatus.APPROVED

    @property
    def approved_count(self):
        """Approved members, owner included."""
        return 1 + self.participants.filter(status=ParticipantStatus.APPROVED).count()

    @property
    def capacity_locked(self):
        return self.approved_count >= MAX_GROUP_MEMBERS


class GroupItem(models.Model):
    """Product line inside a group; one row per product."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    group = models.ForeignKey(Group, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey('catalog.Product', on_delete=models.PROTECT, related_name='group_items')
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    added_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'popular_group_items'
        unique_together = [['group', 'product']]
        constraints = [
            models.CheckConstraint(
                check=models.Q(quantity__gte=1),
                name='group_item_quantity_positive',
            ),
        ]
        ordering = ['added_at']

    def __str__(self):
        return f"{self.product.name} x{self.quantity} in {self.group.name}"


class GroupParticipant(models.Model):
    """Join request / membership of a non-owner user."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    group = models.ForeignKey(Group, on_delete=models.CASCADE, related_name='participants')
    user = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='group_participations')
    status = models.CharField(
        max_length=20,
        choices=ParticipantStatus.choices,
        default=ParticipantStatus.PENDING
    )
    joined_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'popular_group_participants'
        unique_together = [['group', 'user']]
        indexes = [
            models.Index(fields=['group', 'status'], name='popular_gro_group_i_5b7e02_idx'),
            models.Index(fields=['user', 'status'], name='popular_gro_user_id_8d4c13_idx'),
        ]
        ordering = ['joined_at']

    def __str__(self):
        return f"{self.user.get_display_name()} in {self.group.name} ({self.status})"


class GroupPayment(models.Model):
    """Successful payment recorded for a member of a group."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    group = models.ForeignKey(Group, on_delete=models.CASCADE, related_name='payments')
    # Beneficiary; payer may differ when someone pays on their behalf
    user = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='group_payments')
    payer = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='group_payments_made'
    )
    amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.SUCCEEDED
    )
    payment_reference = models.CharField(max_length=255, blank=True)
    paid_at = models.DateTimeField()

    class Meta:
        db_table = 'popular_group_payments'
        unique_together = [['group', 'user']]
        indexes = [
            models.Index(fields=['group', 'status'], name='popular_gro_group_i_a61f93_idx'),
            models.Index(fields=['payment_reference'], name='popular_gro_payment_4e8b27_idx'),
        ]
        ordering = ['paid_at']

    def __str__(self):
        return f"{self.user.get_display_name()} paid {self.amount} for {self.group.name}"
