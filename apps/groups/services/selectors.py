"""
Group lookups shared by the service modules.

Every write to a group's items, participants or payments first takes
the group row lock through ``lock_group`` inside the caller's
transaction, so checks and writes for one group never interleave.
"""

from uuid import UUID

from django.core.exceptions import ValidationError

from apps.groups.models import Group

from .exceptions import GroupNotFoundError


def lock_group(group_id: UUID) -> Group:
    """
    Fetch a group with a row lock (SELECT ... FOR UPDATE).

    Must be called inside ``transaction.atomic``.

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    try:
        return (
            Group.objects
            .select_for_update()
            .get(id=group_id)
        )
    except (Group.DoesNotExist, ValidationError, ValueError):
        raise GroupNotFoundError(f"Group with ID {group_id} not found")


def fetch_group(group_id: UUID) -> Group:
    """
    Fetch a group without locking.

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    try:
        return Group.objects.select_related('owner').get(id=group_id)
    except (Group.DoesNotExist, ValidationError, ValueError):
        raise GroupNotFoundError(f"Group with ID {group_id} not found")
