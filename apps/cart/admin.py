from django.contrib import admin
from apps.cart.models import CartItem


@admin.register(CartItem)
class CartItemAdmin(admin.ModelAdmin):
    """Admin interface for cart lines."""

    list_display = ['user', 'product', 'quantity', 'added_at']
    search_fields = ['user__email', 'product__name']
    readonly_fields = ['added_at']
    ordering = ['-added_at']

    def get_queryset(self, request):
        """Optimize query."""
        qs = super().get_queryset(request)
        return qs.select_related('user', 'product')
