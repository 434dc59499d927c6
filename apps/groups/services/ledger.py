"""
Group ledger service.

Owns the item list of a group and its payments. Item writes are owner
only and refused once the group is payment-locked; the first recorded
payment sets that lock permanently.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from django.db import transaction, IntegrityError
from django.utils import timezone

from apps.accounts.models import User
from apps.catalog.services import (
    ProductPricing,
    ProductNotFoundError,
    get_product_by_id,
    resolve_price,
)
from apps.groups.models import (
    Group,
    MAX_GROUP_MEMBERS,
    GroupItem,
    GroupParticipant,
    GroupPayment,
    ParticipantStatus,
    PaymentStatus,
)

from .eligibility import invalidate_payment_eligibility
from .exceptions import (
    DependencyFailureError,
    DuplicateItemError,
    GroupLockedError,
    GroupNotReadyForPaymentError,
    InsufficientPermissionsError,
    InvalidAmountError,
    InvalidQuantityError,
    ItemNotFoundError,
    ParticipantNotApprovedError,
)
from .selectors import fetch_group, lock_group

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')


@dataclass(frozen=True)
class GroupTotals:
    total_value: Decimal
    discounted_value: Decimal
    potential_savings: Decimal
    item_count: int


def compute_totals(lines: Iterable[Tuple[ProductPricing, int]]) -> GroupTotals:
    """
    Aggregate value of (pricing, quantity) lines.

    total_value is the "Popular Group Value" at original prices;
    discounted_value applies the resolved group price per line.
    """
    total_value = ZERO
    discounted_value = ZERO
    item_count = 0

    for pricing, quantity in lines:
        quote = resolve_price(pricing, quantity)
        total_value += pricing.original_price * quantity
        discounted_value += quote.total_price
        item_count += 1

    return GroupTotals(
        total_value=total_value,
        discounted_value=discounted_value,
        potential_savings=total_value - discounted_value,
        item_count=item_count,
    )


def _ensure_owner(group: Group, user: User, message: str) -> None:
    if not group.is_owner(user):
        raise InsufficientPermissionsError(message)


def _ensure_items_unlocked(group: Group) -> None:
    if group.payment_locked:
        logger.warning("Refused item change on payment-locked group %s", group.id)
        raise GroupLockedError(
            "Group items are locked because a member has already paid"
        )


@transaction.atomic
def add_item(
    *,
    group_id: UUID,
    product_id: UUID,
    quantity: int,
    user: User
) -> GroupItem:
    """
    Add a product to a group (owner only).

    Args:
        group_id: UUID of the group
        product_id: UUID of the catalog product
        quantity: Units to add (>= 1)
        user: User performing the change (must be owner)

    Returns:
        Created GroupItem instance

    Raises:
        GroupNotFoundError: If group doesn't exist
        InsufficientPermissionsError: If user is not the owner
        GroupLockedError: If a payment has been recorded
        InvalidQuantityError: If quantity < 1
        DuplicateItemError: If the product is already in the group
        DependencyFailureError: If the product cannot be found in the catalog
    """
    group = lock_group(group_id)
    _ensure_owner(group, user, "Only the group owner can add items")
    _ensure_items_unlocked(group)

    if quantity < 1:
        raise InvalidQuantityError(f"Quantity must be at least 1, got {quantity}")

    try:
        product = get_product_by_id(product_id=product_id)
    except ProductNotFoundError as exc:
        raise DependencyFailureError(str(exc)) from exc

    if group.items.filter(product=product).exists():
        raise DuplicateItemError(
            f"{product.name} is already in {group.name}; update its quantity instead"
        )

    try:
        with transaction.atomic():
            item = GroupItem.objects.create(group=group, product=product, quantity=quantity)
    except IntegrityError:
        raise DuplicateItemError(f"{product.name} is already in {group.name}")

    logger.info("Added %s x%d to group %s", product.id, quantity, group.id)
    invalidate_payment_eligibility(group.id)
    return item


@transaction.atomic
def set_quantity(
    *,
    group_id: UUID,
    product_id: UUID,
    quantity: int,
    user: User
) -> Optional[GroupItem]:
    """
    Resize a group item in place (owner only).

    A quantity of zero or less removes the item.

    Returns:
        Updated GroupItem, or None when the item was removed

    Raises:
        GroupNotFoundError: If group doesn't exist
        InsufficientPermissionsError: If user is not the owner
        GroupLockedError: If a payment has been recorded
        ItemNotFoundError: If the product is not in the group
    """
    group = lock_group(group_id)
    _ensure_owner(group, user, "Only the group owner can change quantities")
    _ensure_items_unlocked(group)

    try:
        item = (
            GroupItem.objects
            .select_for_update()
            .get(group=group, product_id=product_id)
        )
    except GroupItem.DoesNotExist:
        raise ItemNotFoundError(f"Product {product_id} is not in {group.name}")

    if quantity <= 0:
        item.delete()
        logger.info("Removed %s from group %s (quantity %d)", product_id, group.id, quantity)
        invalidate_payment_eligibility(group.id)
        return None

    item.quantity = quantity
    item.save(update_fields=['quantity'])
    logger.info("Set %s to x%d in group %s", product_id, quantity, group.id)
    return item


@transaction.atomic
def remove_item(*, group_id: UUID, product_id: UUID, user: User) -> bool:
    """
    Remove a product from a group (owner only).

    Removing an absent product is a no-op.

    Returns:
        True if an item was deleted

    Raises:
        GroupNotFoundError: If group doesn't exist
        InsufficientPermissionsError: If user is not the owner
        GroupLockedError: If a payment has been recorded
    """
    group = lock_group(group_id)
    _ensure_owner(group, user, "Only the group owner can remove items")
    _ensure_items_unlocked(group)

    deleted, _ = GroupItem.objects.filter(group=group, product_id=product_id).delete()
    if deleted:
        logger.info("Removed %s from group %s", product_id, group.id)
        invalidate_payment_eligibility(group.id)
    return bool(deleted)


def get_group_items(*, group_id: UUID):
    """Items of a group with products and tiers loaded."""
    fetch_group(group_id)
    return (
        GroupItem.objects
        .filter(group_id=group_id)
        .select_related('product')
        .prefetch_related('product__discount_tiers')
    )


def get_group_totals(*, group_id: UUID) -> GroupTotals:
    """
    Total, discounted value and potential savings of a group.

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    items = get_group_items(group_id=group_id)
    return compute_totals(
        (ProductPricing.from_product(item.product), item.quantity)
        for item in items
    )


@transaction.atomic
def record_payment(
    *,
    group_id: UUID,
    user_id: UUID,
    amount: Decimal,
    payer: Optional[User] = None,
    payment_reference: str = ''
) -> GroupPayment:
    """
    Record a successful payment and lock the group's items.

    Payment opens only once the group is full (capacity locked) and
    holds at least one item.

    Idempotent per (group, user): a repeated notification for a member
    who already paid returns the stored payment unchanged.

    Args:
        group_id: UUID of the group
        user_id: UUID of the member the payment is for
        amount: Amount charged (> 0)
        payer: User who paid, when different from the member
        payment_reference: Opaque reference from the payment provider

    Returns:
        GroupPayment instance

    Raises:
        GroupNotFoundError: If group doesn't exist
        InvalidAmountError: If amount is not positive
        ParticipantNotApprovedError: If user is neither owner nor approved
        GroupNotReadyForPaymentError: If the group is not full or has no items
    """
    group = lock_group(group_id)

    existing = GroupPayment.objects.filter(group=group, user_id=user_id).first()
    if existing is not None:
        logger.info("Duplicate payment notification for user %s in group %s", user_id, group.id)
        return existing

    amount = Decimal(str(amount))
    if amount <= ZERO:
        raise InvalidAmountError(f"Payment amount must be positive, got {amount}")

    is_member = str(group.owner_id) == str(user_id) or GroupParticipant.objects.filter(
        group=group,
        user_id=user_id,
        status=ParticipantStatus.APPROVED
    ).exists()
    if not is_member:
        raise ParticipantNotApprovedError("Only the owner or approved participants can pay")

    approved_count = 1 + GroupParticipant.objects.filter(
        group=group,
        status=ParticipantStatus.APPROVED
    ).count()
    if approved_count < MAX_GROUP_MEMBERS:
        logger.warning("Refused payment on group %s with %d of %d members", group.id, approved_count, MAX_GROUP_MEMBERS)
        raise GroupNotReadyForPaymentError(
            f"Payment opens once the group has {MAX_GROUP_MEMBERS} approved members, it has {approved_count}"
        )
    if not group.items.exists():
        logger.warning("Refused payment on group %s without items", group.id)
        raise GroupNotReadyForPaymentError("Cannot pay for a group without items")

    try:
        with transaction.atomic():
            payment = GroupPayment.objects.create(
                group=group,
                user_id=user_id,
                payer=payer,
                amount=amount,
                status=PaymentStatus.SUCCEEDED,
                payment_reference=payment_reference,
                paid_at=timezone.now(),
            )
    except IntegrityError as exc:
        raise DependencyFailureError(f"Could not store payment: {exc}") from exc

    if not group.payment_locked:
        group.payment_locked = True
        group.save(update_fields=['payment_locked', 'updated_at'])
        logger.info("Group %s is now payment-locked", group.id)

    invalidate_payment_eligibility(group.id)
    logger.info("Recorded payment of %s for user %s in group %s", amount, user_id, group.id)
    return payment


def get_payment_status(*, group_id: UUID) -> List[dict]:
    """
    Payment state of every member, owner first.

    Returns:
        list of dicts with user_id, is_owner, has_paid, amount,
        paid_at and paid_by

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    group = fetch_group(group_id)
    payments = {
        payment.user_id: payment
        for payment in group.payments.filter(status=PaymentStatus.SUCCEEDED)
    }

    member_ids = [group.owner_id] + list(
        group.participants
        .filter(status=ParticipantStatus.APPROVED)
        .values_list('user_id', flat=True)
    )

    rows = []
    for member_id in member_ids:
        payment = payments.get(member_id)
        rows.append({
            'user_id': member_id,
            'is_owner': member_id == group.owner_id,
            'has_paid': payment is not None,
            'amount': payment.amount if payment else None,
            'paid_at': payment.paid_at if payment else None,
            'paid_by': payment.payer_id if payment else None,
        })
    return rows
