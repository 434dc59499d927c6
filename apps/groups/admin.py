from django.contrib import admin
from apps.groups.models import Group, GroupItem, GroupParticipant, GroupPayment


class GroupItemInline(admin.TabularInline):
    """Inline admin for group items."""
    model = GroupItem
    extra = 0
    fields = ['product', 'quantity', 'added_at']
    readonly_fields = ['added_at']


class GroupParticipantInline(admin.TabularInline):
    """Inline admin for join requests and members."""
    model = GroupParticipant
    extra = 0
    fields = ['user', 'status', 'joined_at']
    readonly_fields = ['joined_at']


@admin.register(Group)
class GroupAdmin(admin.ModelAdmin):
    """Admin interface for popular groups."""

    list_display = [
        'name',
        'owner',
        'approved_members',
        'is_public',
        'delivery_method',
        'payment_locked',
        'created_at'
    ]
    list_filter = ['is_public', 'delivery_method', 'payment_locked', 'created_at']
    search_fields = ['name', 'description', 'owner__email', 'share_token']
    readonly_fields = ['share_token', 'payment_locked', 'created_at', 'updated_at']
    inlines = [GroupItemInline, GroupParticipantInline]
    date_hierarchy = 'created_at'
    ordering = ['-created_at']

    fieldsets = (
        ('Basic Information', {
            'fields': ('name', 'description', 'owner', 'is_public')
        }),
        ('Delivery', {
            'fields': ('delivery_method', 'pickup_address')
        }),
        ('Sharing and payment', {
            'fields': ('share_token', 'payment_locked')
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def approved_members(self, obj):
        """Owner plus approved participants."""
        return obj.approved_count
    approved_members.short_description = 'Members'


@admin.register(GroupPayment)
class GroupPaymentAdmin(admin.ModelAdmin):
    """Payments are recorded by the service layer only."""

    list_display = ['group', 'user', 'payer', 'amount', 'status', 'paid_at']
    list_filter = ['status', 'paid_at']
    search_fields = ['user__email', 'group__name', 'payment_reference']
    readonly_fields = ['group', 'user', 'payer', 'amount', 'status', 'payment_reference', 'paid_at']
    date_hierarchy = 'paid_at'
    ordering = ['-paid_at']

    def has_add_permission(self, request):
        return False

    def get_queryset(self, request):
        """Optimize query."""
        qs = super().get_queryset(request)
        return qs.select_related('user', 'payer', 'group')
