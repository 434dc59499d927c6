"""
Group management service.

Handles group CRUD operations with proper transaction safety.
"""

import logging
from typing import Iterable, Optional, Tuple
from uuid import UUID

from django.core.exceptions import ValidationError
from django.db import transaction, IntegrityError
from django.db.models import Prefetch, QuerySet

from apps.accounts.models import User, UserAddress
from apps.cart.models import CartItem
from apps.catalog.services import ProductNotFoundError, get_pricing_map
from apps.groups.models import (
    DeliveryMethod,
    Group,
    GroupItem,
    GroupParticipant,
    generate_share_token,
)

from .eligibility import invalidate_payment_eligibility
from .exceptions import (
    DependencyFailureError,
    DuplicateItemError,
    EmptyCartError,
    GroupLockedError,
    GroupNotFoundError,
    InsufficientPermissionsError,
    InvalidPickupAddressError,
    InvalidQuantityError,
)
from .selectors import lock_group

logger = logging.getLogger(__name__)


def _resolve_pickup_address(
    *,
    owner: User,
    delivery_method: str,
    pickup_address_id: Optional[UUID]
) -> Optional[UserAddress]:
    if delivery_method != DeliveryMethod.PICKUP:
        return None

    if not pickup_address_id:
        raise InvalidPickupAddressError("Pickup groups need a pickup address")

    try:
        return UserAddress.objects.get(id=pickup_address_id, user=owner)
    except (UserAddress.DoesNotExist, ValidationError, ValueError):
        raise InvalidPickupAddressError("Pickup address not found among the owner's addresses")


def _validate_items(items: Iterable[Tuple[UUID, int]]) -> list:
    lines = list(items)
    seen = set()
    for product_id, quantity in lines:
        if quantity < 1:
            raise InvalidQuantityError(f"Quantity must be at least 1, got {quantity}")
        if str(product_id) in seen:
            raise DuplicateItemError(f"Product {product_id} listed twice")
        seen.add(str(product_id))

    try:
        get_pricing_map(product_ids=[product_id for product_id, _ in lines])
    except ProductNotFoundError as exc:
        raise DependencyFailureError(str(exc)) from exc
    return lines


def create_group(
    *,
    name: str,
    owner: User,
    description: str = '',
    is_public: bool = True,
    delivery_method: str = DeliveryMethod.DELIVERY,
    pickup_address_id: Optional[UUID] = None,
    items: Iterable[Tuple[UUID, int]] = (),
    max_retries: int = 5
) -> Group:
    """
    Create a new group, optionally pre-populated with items.

    This is a multi-step operation wrapped in a transaction:
    1. Generate unique share token
    2. Create the group
    3. Create one item per (product_id, quantity) pair

    Args:
        name: Group name
        owner: User who will own the group (implicit approved member)
        description: Optional group description
        is_public: Whether the group is listed publicly (default True)
        delivery_method: 'delivery' or 'pickup'
        pickup_address_id: Owner's address, required for pickup
        items: Initial (product_id, quantity) pairs
        max_retries: Maximum attempts to generate unique share token

    Returns:
        Created Group instance

    Raises:
        InvalidPickupAddressError: If pickup is chosen without a valid address
        InvalidQuantityError: If an item quantity is below 1
        DuplicateItemError: If a product is listed twice
        DependencyFailureError: If a product is missing from the catalog
        RuntimeError: If cannot generate unique share token after retries
    """
    pickup_address = _resolve_pickup_address(
        owner=owner,
        delivery_method=delivery_method,
        pickup_address_id=pickup_address_id,
    )
    lines = _validate_items(items)

    # Retry logic outside transaction to handle share token collisions
    for attempt in range(max_retries):
        share_token = generate_share_token()

        try:
            # Each attempt is a separate transaction
            with transaction.atomic():
                group = Group.objects.create(
                    name=name,
                    owner=owner,
                    description=description,
                    is_public=is_public,
                    delivery_method=delivery_method,
                    pickup_address=pickup_address,
                    share_token=share_token
                )

                GroupItem.objects.bulk_create([
                    GroupItem(group=group, product_id=product_id, quantity=quantity)
                    for product_id, quantity in lines
                ])

                logger.info("Created group %s with %d items", group.id, len(lines))
                return group

        except IntegrityError:
            # Share token collision (very rare)
            if attempt == max_retries - 1:
                raise RuntimeError(
                    f"Failed to generate unique share token after {max_retries} attempts"
                )
            continue

    # Should never reach here
    raise RuntimeError("Unexpected error in group creation")


@transaction.atomic
def create_group_from_cart(
    *,
    name: str,
    owner: User,
    description: Optional[str] = None,
    is_public: bool = True
) -> Group:
    """
    Turn the owner's cart into a new public group and empty the cart.

    Raises:
        EmptyCartError: If the cart has no items
    """
    cart_items = list(
        CartItem.objects
        .select_for_update()
        .filter(user=owner)
        .values_list('product_id', 'quantity')
    )
    if not cart_items:
        raise EmptyCartError("Cart is empty")

    if description is None:
        description = f"A curated collection of {len(cart_items)} items for group buying"

    group = create_group(
        name=name.strip(),
        owner=owner,
        description=description,
        is_public=is_public,
        items=cart_items,
    )
    CartItem.objects.filter(user=owner).delete()
    return group


def get_group_by_id(*, group_id: UUID) -> Group:
    """
    Get a group by ID with optimized queries.

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    try:
        return (
            Group.objects
            .select_related('owner', 'pickup_address')
            .prefetch_related(
                Prefetch(
                    'items',
                    queryset=GroupItem.objects.select_related('product').prefetch_related('product__discount_tiers')
                ),
                Prefetch(
                    'participants',
                    queryset=GroupParticipant.objects.select_related('user')
                ),
            )
            .get(id=group_id)
        )
    except (Group.DoesNotExist, ValidationError, ValueError):
        raise GroupNotFoundError(f"Group with ID {group_id} not found")


def get_group_by_share_token(*, share_token: str) -> Group:
    """
    Resolve a share link. Works for private groups too.

    Raises:
        GroupNotFoundError: If no group has this token
    """
    try:
        group_id = Group.objects.values_list('id', flat=True).get(share_token=share_token)
    except Group.DoesNotExist:
        raise GroupNotFoundError("No group for this share link")
    return get_group_by_id(group_id=group_id)


def list_public_groups(*, exclude_owner: Optional[User] = None) -> QuerySet[Group]:
    """Public groups, newest first."""
    queryset = (
        Group.objects
        .filter(is_public=True)
        .select_related('owner')
        .prefetch_related('items__product__discount_tiers', 'participants')
    )
    if exclude_owner is not None:
        queryset = queryset.exclude(owner=exclude_owner)
    return queryset


@transaction.atomic
def update_group(
    *,
    group_id: UUID,
    user: User,
    name: Optional[str] = None,
    description: Optional[str] = None,
    is_public: Optional[bool] = None,
    delivery_method: Optional[str] = None,
    pickup_address_id: Optional[UUID] = None
) -> Group:
    """
    Update group settings (owner only).

    Uses select_for_update to prevent concurrent modifications.

    Raises:
        GroupNotFoundError: If group doesn't exist
        InsufficientPermissionsError: If user is not the owner
        GroupLockedError: If a payment has been recorded
        InvalidPickupAddressError: If pickup is chosen without a valid address
    """
    group = lock_group(group_id)

    if not group.is_owner(user):
        raise InsufficientPermissionsError("Only the group owner can update the group")

    if group.payment_locked:
        raise GroupLockedError("Group cannot be edited after a member has paid")

    # Update fields if provided
    update_fields = ['updated_at']

    if name is not None:
        group.name = name
        update_fields.append('name')

    if description is not None:
        group.description = description
        update_fields.append('description')

    if is_public is not None:
        group.is_public = is_public
        update_fields.append('is_public')

    if delivery_method is not None or pickup_address_id is not None:
        method = delivery_method or group.delivery_method
        group.pickup_address = _resolve_pickup_address(
            owner=group.owner,
            delivery_method=method,
            pickup_address_id=pickup_address_id or group.pickup_address_id,
        )
        group.delivery_method = method
        update_fields.extend(['delivery_method', 'pickup_address'])

    group.save(update_fields=update_fields)

    return group


@transaction.atomic
def delete_group(*, group_id: UUID, user: User) -> None:
    """
    Delete a group (owner only).

    Cascading deletes will automatically remove:
    - All items
    - All participant records
    - All payment records

    Raises:
        GroupNotFoundError: If group doesn't exist
        InsufficientPermissionsError: If user is not the owner
        GroupLockedError: If a member has already paid
    """
    group = lock_group(group_id)

    # Only owner can delete
    if not group.is_owner(user):
        raise InsufficientPermissionsError("Only the group owner can delete the group")

    if group.payment_locked:
        logger.warning("Refused deletion of payment-locked group %s", group.id)
        raise GroupLockedError("Group cannot be deleted after a member has paid")

    group.delete()
    invalidate_payment_eligibility(group_id)
    logger.info("Deleted group %s", group_id)
