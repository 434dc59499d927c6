from rest_framework import serializers
from .models import DeliveryMethod, Group, GroupItem, GroupParticipant, GroupPayment
from apps.accounts.models import User, UserAddress
from apps.catalog.serializers import ProductListSerializer


class UserMinimalSerializer(serializers.ModelSerializer):
    """Minimal user info for nested serialization."""

    display_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'email', 'display_name']
        read_only_fields = fields

    def get_display_name(self, obj):
        return obj.get_display_name()


class PickupAddressSerializer(serializers.ModelSerializer):

    class Meta:
        model = UserAddress
        fields = ['id', 'nickname', 'address_line', 'city', 'pincode', 'state', 'country']
        read_only_fields = fields


class GroupItemSerializer(serializers.ModelSerializer):
    """Group line with its resolved group price."""

    product = ProductListSerializer(read_only=True)
    unit_price = serializers.SerializerMethodField()

    class Meta:
        model = GroupItem
        fields = ['id', 'product', 'quantity', 'unit_price', 'added_at']
        read_only_fields = fields

    def get_unit_price(self, obj):
        tier = obj.product.get_pricing().active_tier
        return str(tier.final_price if tier else obj.product.original_price)


class GroupParticipantSerializer(serializers.ModelSerializer):

    user = UserMinimalSerializer(read_only=True)

    class Meta:
        model = GroupParticipant
        fields = ['id', 'user', 'status', 'joined_at', 'updated_at']
        read_only_fields = fields


class GroupSerializer(serializers.ModelSerializer):
    """Main serializer for groups."""

    owner = UserMinimalSerializer(read_only=True)
    pickup_address = PickupAddressSerializer(read_only=True)
    items = GroupItemSerializer(many=True, read_only=True)
    approved_count = serializers.SerializerMethodField()
    user_status = serializers.SerializerMethodField()

    class Meta:
        model = Group
        fields = [
            'id',
            'name',
            'description',
            'is_public',
            'share_token',
            'owner',
            'delivery_method',
            'pickup_address',
            'payment_locked',
            'items',
            'approved_count',
            'user_status',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_approved_count(self, obj):
        return obj.approved_count

    def get_user_status(self, obj):
        """Current user's standing: 'owner', a participant status or None."""
        request = self.context.get('request')
        if request and request.user.is_authenticated:
            if obj.is_owner(request.user):
                return 'owner'
            return obj.get_participant_status(request.user)
        return None

    def to_representation(self, instance):
        data = super().to_representation(instance)
        # Share links are for the owner and members to hand out
        request = self.context.get('request')
        if not (request and request.user.is_authenticated and instance.has_member(request.user)):
            data.pop('share_token', None)
        return data


class GroupListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for list views."""

    owner = UserMinimalSerializer(read_only=True)
    item_count = serializers.SerializerMethodField()

    class Meta:
        model = Group
        fields = [
            'id',
            'name',
            'description',
            'is_public',
            'owner',
            'delivery_method',
            'payment_locked',
            'item_count',
            'created_at',
        ]
        read_only_fields = fields

    def get_item_count(self, obj):
        return obj.items.count()


class GroupItemInputSerializer(serializers.Serializer):

    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class GroupCreateSerializer(serializers.Serializer):
    """Serializer for creating groups."""

    name = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    is_public = serializers.BooleanField(required=False, default=True)
    delivery_method = serializers.ChoiceField(
        choices=DeliveryMethod.choices,
        required=False,
        default=DeliveryMethod.DELIVERY
    )
    pickup_address_id = serializers.UUIDField(required=False, allow_null=True)
    items = GroupItemInputSerializer(many=True, required=False, default=list)


class GroupFromCartSerializer(serializers.Serializer):

    name = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True)
    is_public = serializers.BooleanField(required=False, default=True)


class GroupUpdateSerializer(serializers.Serializer):

    name = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    is_public = serializers.BooleanField(required=False)
    delivery_method = serializers.ChoiceField(choices=DeliveryMethod.choices, required=False)
    pickup_address_id = serializers.UUIDField(required=False, allow_null=True)


class SetQuantitySerializer(serializers.Serializer):
    """Zero or less removes the item."""

    quantity = serializers.IntegerField()


class JoinGroupSerializer(serializers.Serializer):

    share_token = serializers.CharField(max_length=64, required=False, allow_blank=True)


class ParticipantActionSerializer(serializers.Serializer):

    user_id = serializers.UUIDField()


class RecordPaymentSerializer(serializers.Serializer):
    """Payment notification; user_id defaults to the caller."""

    user_id = serializers.UUIDField(required=False)
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    payment_reference = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')


class GroupPaymentSerializer(serializers.ModelSerializer):

    class Meta:
        model = GroupPayment
        fields = ['id', 'group', 'user', 'payer', 'amount', 'status', 'payment_reference', 'paid_at']
        read_only_fields = fields


class PaymentStatusSerializer(serializers.Serializer):

    user_id = serializers.UUIDField()
    is_owner = serializers.BooleanField()
    has_paid = serializers.BooleanField()
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, allow_null=True)
    paid_at = serializers.DateTimeField(allow_null=True)
    paid_by = serializers.UUIDField(allow_null=True)


class GroupTotalsSerializer(serializers.Serializer):

    total_value = serializers.DecimalField(max_digits=12, decimal_places=2)
    discounted_value = serializers.DecimalField(max_digits=12, decimal_places=2)
    potential_savings = serializers.DecimalField(max_digits=12, decimal_places=2)
    item_count = serializers.IntegerField()


class ParticipationStatusSerializer(serializers.Serializer):

    status = serializers.CharField(allow_null=True)
    is_owner = serializers.BooleanField()
    is_pending = serializers.BooleanField()
    is_approved = serializers.BooleanField()


class PaymentEligibilitySerializer(serializers.Serializer):

    group_id = serializers.UUIDField()
    approved_count = serializers.IntegerField()
    spots_left = serializers.IntegerField()
    capacity_locked = serializers.BooleanField()
    ready_for_payment = serializers.BooleanField()
    payment_locked = serializers.BooleanField()
    paid_count = serializers.IntegerField()
