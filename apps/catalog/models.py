from django.db import models
from django.core.validators import MinValueValidator
from decimal import Decimal
import uuid


class Product(models.Model):
    """Catalog product sold at original price or a group discount."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    seller = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='products'
    )
    name = models.CharField(max_length=255, db_index=True)
    description = models.TextField(blank=True)
    original_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'products'
        indexes = [
            models.Index(fields=['name'], name='products_name_8a5bc2_idx'),
            models.Index(fields=['is_active', 'created_at'], name='products_is_acti_2f0c4e_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return self.name

    def get_pricing(self):
        """Immutable pricing view used by the pricing resolver."""
        from .services.pricing import ProductPricing
        return ProductPricing.from_product(self)


class DiscountTier(models.Model):
    """One row of a product's group discount table."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='discount_tiers')
    min_quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    discount_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal('0.00')
    )
    final_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )

    class Meta:
        db_table = 'discount_tiers'
        unique_together = [['product', 'min_quantity']]
        # Tier list order: index 0 is the active tier
        ordering = ['min_quantity', 'id']

    def __str__(self):
        return f"{self.product.name} @ {self.min_quantity}+: {self.final_price}"
