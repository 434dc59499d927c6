from rest_framework import serializers
from .models import Product, DiscountTier


class DiscountTierSerializer(serializers.ModelSerializer):
    """Serializer for a product's discount tiers."""

    class Meta:
        model = DiscountTier
        fields = ['id', 'min_quantity', 'discount_percentage', 'final_price']
        read_only_fields = fields


class ProductSerializer(serializers.ModelSerializer):
    """Main serializer for products."""

    discount_tiers = DiscountTierSerializer(many=True, read_only=True)
    group_price = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            'id',
            'name',
            'description',
            'original_price',
            'group_price',
            'discount_tiers',
            'is_active',
            'seller',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_group_price(self, obj):
        """Unit price inside a popular group."""
        tier = obj.get_pricing().active_tier
        return str(tier.final_price if tier else obj.original_price)


class ProductListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for list views."""

    class Meta:
        model = Product
        fields = ['id', 'name', 'original_price', 'is_active']
        read_only_fields = fields


class QuoteQuerySerializer(serializers.Serializer):
    """Query parameters for a price quote."""

    quantity = serializers.IntegerField(min_value=1, default=1)


class PriceQuoteSerializer(serializers.Serializer):
    """Output serializer for PriceQuote."""

    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField()
    original_price = serializers.DecimalField(max_digits=12, decimal_places=2)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2)
    total_price = serializers.DecimalField(max_digits=12, decimal_places=2)
    unit_savings = serializers.DecimalField(max_digits=12, decimal_places=2)
    savings = serializers.DecimalField(max_digits=12, decimal_places=2)
