from django.core.validators import MinValueValidator
from django.db import models
import uuid


class CartItem(models.Model):
    """Shopper's cart line; one row per product."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='cart_items')
    product = models.ForeignKey('catalog.Product', on_delete=models.CASCADE, related_name='cart_items')
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    added_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'cart_items'
        unique_together = [['user', 'product']]
        constraints = [
            models.CheckConstraint(
                check=models.Q(quantity__gte=1),
                name='cart_item_quantity_positive',
            ),
        ]
        ordering = ['added_at']

    def __str__(self):
        return f"{self.product.name} x{self.quantity} for {self.user.email}"
