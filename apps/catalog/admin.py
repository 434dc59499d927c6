from django.contrib import admin
from apps.catalog.models import Product, DiscountTier


class DiscountTierInline(admin.TabularInline):
    """Inline admin for discount tiers."""
    model = DiscountTier
    extra = 1
    fields = ['min_quantity', 'discount_percentage', 'final_price']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    """Admin interface for catalog products."""

    list_display = ['name', 'original_price', 'group_price', 'seller', 'is_active', 'created_at']
    list_filter = ['is_active', 'created_at']
    search_fields = ['name', 'description', 'seller__email']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [DiscountTierInline]
    ordering = ['-created_at']

    def group_price(self, obj):
        """Price of the active (first) tier."""
        tier = obj.get_pricing().active_tier
        return tier.final_price if tier else '-'
    group_price.short_description = 'Group price'
