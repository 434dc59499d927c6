from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, UserAddress


class UserAddressInline(admin.TabularInline):
    """Inline admin for saved addresses."""
    model = UserAddress
    extra = 0
    fields = ['nickname', 'city', 'pincode', 'is_default']


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Admin interface for shoppers and sellers."""

    list_display = [
        'email',
        'display_name',
        'phone_number',
        'is_seller',
        'is_active',
        'is_staff',
        'created_at',
    ]

    list_filter = [
        'is_seller',
        'is_active',
        'is_staff',
        'created_at',
    ]

    search_fields = [
        'email',
        'display_name',
        'phone_number',
    ]

    ordering = ['-created_at']
    date_hierarchy = 'created_at'
    readonly_fields = ['created_at', 'last_login']
    inlines = [UserAddressInline]

    # Remove username field references from BaseUserAdmin
    fieldsets = (
        ('Basic Information', {
            'fields': ('email', 'display_name', 'phone_number', 'password')
        }),
        ('Permissions', {
            'fields': ('is_seller', 'is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions'),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'last_login'),
            'classes': ('collapse',),
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'display_name', 'password1', 'password2'),
        }),
    )

    filter_horizontal = ('groups', 'user_permissions')
