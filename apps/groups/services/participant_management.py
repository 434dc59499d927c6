"""
Participant management service.

Join requests move through pending -> approved | rejected. Approved
members can be removed; rejected users may request again. The owner
is an implicit approved member and counts toward the five-member
capacity, which is absolute: no approval is accepted once it is full.
"""

import logging
from typing import Optional
from uuid import UUID

from django.db import transaction
from django.db.models import QuerySet

from apps.accounts.models import User
from apps.groups.models import (
    Group,
    GroupParticipant,
    MAX_GROUP_MEMBERS,
    ParticipantStatus,
)

from .eligibility import invalidate_payment_eligibility
from .exceptions import (
    AlreadyApprovedError,
    CannotRemoveOwnerError,
    GroupAtCapacityError,
    InsufficientPermissionsError,
    InvalidShareTokenError,
    NotApprovedError,
    NotPendingError,
    UserNotFoundError,
)
from .selectors import fetch_group, lock_group

logger = logging.getLogger(__name__)


def _approved_count(group: Group) -> int:
    return 1 + GroupParticipant.objects.filter(
        group=group,
        status=ParticipantStatus.APPROVED
    ).count()


def _ensure_capacity(group: Group) -> None:
    if _approved_count(group) >= MAX_GROUP_MEMBERS:
        logger.warning("Group %s is at capacity", group.id)
        raise GroupAtCapacityError(
            f"Group is full - maximum {MAX_GROUP_MEMBERS} members allowed"
        )


def _ensure_owner(group: Group, user: User, message: str) -> None:
    if not group.is_owner(user):
        raise InsufficientPermissionsError(message)


def _log_transition(group: Group, user_id, status: str) -> None:
    logger.info("Participant %s in group %s -> %s", user_id, group.id, status)


@transaction.atomic
def request_join(
    *,
    group_id: UUID,
    user: User,
    share_token: Optional[str] = None
) -> GroupParticipant:
    """
    Ask to join a group.

    Creates a pending request, or re-opens a rejected one. A request
    that is already pending is returned unchanged. Private groups can
    only be joined with their share token.

    Args:
        group_id: UUID of the group
        user: User asking to join
        share_token: Share token, required for private groups

    Returns:
        Pending GroupParticipant instance

    Raises:
        GroupNotFoundError: If group doesn't exist
        AlreadyApprovedError: If user is the owner or already approved
        InvalidShareTokenError: If the group is private and the token is wrong
        GroupAtCapacityError: If the group already has five members
    """
    group = lock_group(group_id)

    if group.is_owner(user):
        raise AlreadyApprovedError("The group owner is already a member")

    participant = GroupParticipant.objects.filter(group=group, user=user).first()
    if participant is not None and participant.status == ParticipantStatus.APPROVED:
        raise AlreadyApprovedError(f"User is already a member of {group.name}")

    if not group.is_public and share_token != group.share_token:
        raise InvalidShareTokenError("This group is private")

    _ensure_capacity(group)

    if participant is not None and participant.status == ParticipantStatus.PENDING:
        return participant

    if participant is not None:
        # Re-request after rejection replaces the old record
        participant.delete()

    participant = GroupParticipant.objects.create(
        group=group,
        user=user,
        status=ParticipantStatus.PENDING
    )
    _log_transition(group, user.id, ParticipantStatus.PENDING)
    invalidate_payment_eligibility(group.id)
    return participant


@transaction.atomic
def approve_participant(
    *,
    group_id: UUID,
    user_id: UUID,
    approved_by: User
) -> GroupParticipant:
    """
    Approve a pending request (owner only).

    Args:
        group_id: UUID of the group
        user_id: UUID of the requesting user
        approved_by: User performing the approval (must be owner)

    Returns:
        Approved GroupParticipant instance

    Raises:
        GroupNotFoundError: If group doesn't exist
        InsufficientPermissionsError: If approved_by is not the owner
        NotPendingError: If the user has no pending request
        GroupAtCapacityError: If the group already has five members
    """
    group = lock_group(group_id)
    _ensure_owner(group, approved_by, "Only the group owner can approve participants")

    try:
        participant = (
            GroupParticipant.objects
            .select_for_update()
            .get(group=group, user_id=user_id, status=ParticipantStatus.PENDING)
        )
    except GroupParticipant.DoesNotExist:
        raise NotPendingError("User has no pending request for this group")

    _ensure_capacity(group)

    participant.status = ParticipantStatus.APPROVED
    participant.save(update_fields=['status', 'updated_at'])
    _log_transition(group, user_id, ParticipantStatus.APPROVED)

    if _approved_count(group) >= MAX_GROUP_MEMBERS:
        logger.info("Group %s reached capacity and is ready for payment", group.id)

    invalidate_payment_eligibility(group.id)
    return participant


@transaction.atomic
def reject_participant(
    *,
    group_id: UUID,
    user_id: UUID,
    rejected_by: User
) -> GroupParticipant:
    """
    Reject a pending request (owner only).

    Raises:
        GroupNotFoundError: If group doesn't exist
        InsufficientPermissionsError: If rejected_by is not the owner
        NotPendingError: If the user has no pending request
    """
    group = lock_group(group_id)
    _ensure_owner(group, rejected_by, "Only the group owner can reject participants")

    try:
        participant = (
            GroupParticipant.objects
            .select_for_update()
            .get(group=group, user_id=user_id, status=ParticipantStatus.PENDING)
        )
    except GroupParticipant.DoesNotExist:
        raise NotPendingError("User has no pending request for this group")

    participant.status = ParticipantStatus.REJECTED
    participant.save(update_fields=['status', 'updated_at'])
    _log_transition(group, user_id, ParticipantStatus.REJECTED)
    invalidate_payment_eligibility(group.id)
    return participant


@transaction.atomic
def remove_participant(
    *,
    group_id: UUID,
    user_id: UUID,
    removed_by: User
) -> None:
    """
    Remove an approved participant.

    Allowed for the owner, or for the participant removing themself.
    Removing a member re-opens a full group.

    Raises:
        GroupNotFoundError: If group doesn't exist
        InsufficientPermissionsError: If removed_by is neither owner nor the user
        CannotRemoveOwnerError: If trying to remove the owner
        NotApprovedError: If the user is not an approved participant
    """
    group = lock_group(group_id)

    if not (group.is_owner(removed_by) or str(removed_by.id) == str(user_id)):
        raise InsufficientPermissionsError("Only the group owner can remove other participants")

    if str(group.owner_id) == str(user_id):
        raise CannotRemoveOwnerError("Cannot remove the group owner")

    try:
        participant = (
            GroupParticipant.objects
            .select_for_update()
            .get(group=group, user_id=user_id, status=ParticipantStatus.APPROVED)
        )
    except GroupParticipant.DoesNotExist:
        raise NotApprovedError("User is not an approved participant of this group")

    participant.delete()
    logger.info("Participant %s removed from group %s", user_id, group.id)
    invalidate_payment_eligibility(group.id)


@transaction.atomic
def add_participant_directly(
    *,
    group_id: UUID,
    user_id: UUID,
    added_by: User
) -> GroupParticipant:
    """
    Add a user straight to approved (owner only).

    Raises:
        GroupNotFoundError: If group doesn't exist
        InsufficientPermissionsError: If added_by is not the owner
        UserNotFoundError: If the user doesn't exist
        AlreadyApprovedError: If the user is the owner or already approved
        GroupAtCapacityError: If the group already has five members
    """
    group = lock_group(group_id)
    _ensure_owner(group, added_by, "Only the group owner can add participants")

    try:
        user = User.objects.get(id=user_id, is_active=True)
    except (User.DoesNotExist, ValueError):
        raise UserNotFoundError(f"User with ID {user_id} not found")

    if group.is_owner(user):
        raise AlreadyApprovedError("The group owner is already a member")

    participant = GroupParticipant.objects.filter(group=group, user=user).first()
    if participant is not None and participant.status == ParticipantStatus.APPROVED:
        raise AlreadyApprovedError(f"User is already a member of {group.name}")

    _ensure_capacity(group)

    if participant is None:
        participant = GroupParticipant.objects.create(
            group=group,
            user=user,
            status=ParticipantStatus.APPROVED
        )
    else:
        participant.status = ParticipantStatus.APPROVED
        participant.save(update_fields=['status', 'updated_at'])

    _log_transition(group, user.id, ParticipantStatus.APPROVED)
    invalidate_payment_eligibility(group.id)
    return participant


def get_participation_status(*, group_id: UUID, user: User) -> dict:
    """
    The user's standing in a group.

    Returns:
        dict with status (None, 'owner' or a participant status),
        is_owner, is_pending and is_approved
    """
    group = fetch_group(group_id)

    if group.is_owner(user):
        status = 'owner'
    else:
        status = group.get_participant_status(user)

    return {
        'status': status,
        'is_owner': status == 'owner',
        'is_pending': status == ParticipantStatus.PENDING,
        'is_approved': status in ('owner', ParticipantStatus.APPROVED),
    }


def get_pending_participants(*, group_id: UUID, user: User) -> QuerySet[GroupParticipant]:
    """
    Pending requests of a group (owner only).

    Raises:
        GroupNotFoundError: If group doesn't exist
        InsufficientPermissionsError: If user is not the owner
    """
    group = fetch_group(group_id)
    _ensure_owner(group, user, "Only the group owner can view pending requests")

    return (
        GroupParticipant.objects
        .filter(group=group, status=ParticipantStatus.PENDING)
        .select_related('user')
    )


def get_approved_participants(*, group_id: UUID, user: User) -> QuerySet[GroupParticipant]:
    """
    Approved participants of a group (owner or approved members).

    Raises:
        GroupNotFoundError: If group doesn't exist
        InsufficientPermissionsError: If user is not a member
    """
    group = fetch_group(group_id)
    if not group.has_member(user):
        raise InsufficientPermissionsError(
            "Only the group owner or approved participants can view the member list"
        )

    return (
        GroupParticipant.objects
        .filter(group=group, status=ParticipantStatus.APPROVED)
        .select_related('user')
    )
