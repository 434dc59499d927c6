from rest_framework import serializers
from .models import CartItem
from apps.catalog.serializers import ProductListSerializer


class CartItemSerializer(serializers.ModelSerializer):
    """Cart line with its product."""

    product = ProductListSerializer(read_only=True)

    class Meta:
        model = CartItem
        fields = ['id', 'product', 'quantity', 'added_at']
        read_only_fields = fields


class AddToCartSerializer(serializers.Serializer):

    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1, default=1)


class UpdateCartItemSerializer(serializers.Serializer):
    """Zero or less removes the line."""

    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField()


class RemoveFromCartSerializer(serializers.Serializer):

    product_id = serializers.UUIDField()


class GroupSummarySerializer(serializers.Serializer):
    """Group snapshot as seen by the matcher."""

    id = serializers.UUIDField(source='group_id')
    name = serializers.CharField()
    owner_id = serializers.UUIDField()
    approved_count = serializers.IntegerField()
    is_full = serializers.BooleanField()


class MatchingItemSerializer(serializers.Serializer):

    product_id = serializers.UUIDField()
    cart_quantity = serializers.IntegerField()
    group_quantity = serializers.IntegerField()
    individual_savings = serializers.DecimalField(max_digits=12, decimal_places=2)


class MatchResultSerializer(serializers.Serializer):

    group = GroupSummarySerializer()
    similarity_score = serializers.FloatField()
    matching_items = MatchingItemSerializer(many=True)
    potential_savings = serializers.DecimalField(max_digits=12, decimal_places=2)
    is_already_member = serializers.BooleanField()
    is_full = serializers.BooleanField()


class StrategySerializer(serializers.Serializer):

    kind = serializers.CharField(source='kind.value')
    groups = GroupSummarySerializer(many=True)
    total_savings = serializers.DecimalField(max_digits=12, decimal_places=2)
    coverage_percent = serializers.FloatField()
    uncovered_products = serializers.ListField(child=serializers.UUIDField())
