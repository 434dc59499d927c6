"""
Payment eligibility view.

A group is ready for payment once its capacity is locked (five
approved members, owner included). The view is cached per group and
dropped on every participant transition or payment.
"""

import logging
from uuid import UUID

from django.conf import settings
from django.core.cache import cache
from django.db import transaction

from apps.groups.models import MAX_GROUP_MEMBERS, ParticipantStatus

from .selectors import fetch_group

logger = logging.getLogger(__name__)


def payment_eligibility_cache_key(group_id: UUID) -> str:
    return f"groups:payment-eligibility:{group_id}"


def invalidate_payment_eligibility(group_id: UUID) -> None:
    """Drop the cached view now and again once the transaction commits."""
    key = payment_eligibility_cache_key(group_id)
    cache.delete(key)
    transaction.on_commit(lambda: cache.delete(key))


def get_payment_eligibility(*, group_id: UUID) -> dict:
    """
    Capacity and payment state of a group.

    Returns:
        dict with approved_count, spots_left, capacity_locked,
        ready_for_payment, payment_locked and paid_count

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    key = payment_eligibility_cache_key(group_id)
    cached = cache.get(key)
    if cached is not None:
        return cached

    group = fetch_group(group_id)
    approved_count = 1 + group.participants.filter(status=ParticipantStatus.APPROVED).count()
    capacity_locked = approved_count >= MAX_GROUP_MEMBERS

    eligibility = {
        'group_id': str(group.id),
        'approved_count': approved_count,
        'spots_left': max(0, MAX_GROUP_MEMBERS - approved_count),
        'capacity_locked': capacity_locked,
        'ready_for_payment': capacity_locked and group.items.exists(),
        'payment_locked': group.payment_locked,
        'paid_count': group.payments.count(),
    }
    cache.set(key, eligibility, settings.GROUPBUY_PAYMENT_ELIGIBILITY_CACHE_TIMEOUT)
    logger.debug("Cached payment eligibility for group %s", group.id)
    return eligibility
