from rest_framework import permissions


class IsGroupMember(permissions.BasePermission):
    """
    Permission: User must be the owner or an approved participant.
    """

    def has_object_permission(self, request, view, obj):
        # obj is a Group instance
        return obj.has_member(request.user)
