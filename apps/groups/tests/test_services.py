"""
Service layer unit tests for groups app.

Tests cover:
- Transaction safety
- Concurrency protection (race conditions)
- Capacity and payment locks
- Error handling
"""

import pytest
import threading
from decimal import Decimal
from uuid import uuid4
from unittest.mock import patch
from django.core.cache import cache
from django.test import TransactionTestCase

from apps.cart.models import CartItem
from apps.catalog.models import Product
from apps.groups.models import (
    DeliveryMethod,
    Group,
    GroupItem,
    GroupParticipant,
    GroupPayment,
    MAX_GROUP_MEMBERS,
    ParticipantStatus,
)
from apps.groups.services import (
    create_group,
    create_group_from_cart,
    get_group_by_id,
    get_group_by_share_token,
    list_public_groups,
    update_group,
    delete_group,
    add_item,
    set_quantity,
    remove_item,
    get_group_totals,
    record_payment,
    get_payment_status,
    request_join,
    approve_participant,
    reject_participant,
    remove_participant,
    add_participant_directly,
    get_participation_status,
    get_pending_participants,
    get_approved_participants,
    get_payment_eligibility,
    GroupSnapshot,
    get_public_group_snapshots,
)
from apps.groups.services.eligibility import payment_eligibility_cache_key
from apps.groups.services.exceptions import (
    AlreadyApprovedError,
    CannotRemoveOwnerError,
    DependencyFailureError,
    DuplicateItemError,
    EmptyCartError,
    GroupAtCapacityError,
    GroupLockedError,
    GroupNotFoundError,
    GroupNotReadyForPaymentError,
    InsufficientPermissionsError,
    InvalidAmountError,
    InvalidPickupAddressError,
    InvalidQuantityError,
    InvalidShareTokenError,
    ItemNotFoundError,
    NotApprovedError,
    NotPendingError,
    ParticipantNotApprovedError,
    UserNotFoundError,
)


# =============================================================================
# Group Management Service Tests
# =============================================================================

@pytest.mark.django_db
class TestGroupManagement:
    """Tests for group_management.py service functions."""

    def test_create_group_success(self, group_owner):
        """A new group is public, unlocked and carries a share token."""
        group = create_group(
            name="Test Group",
            owner=group_owner,
            description="Test description",
        )

        assert group.name == "Test Group"
        assert group.owner == group_owner
        assert group.is_public is True
        assert group.payment_locked is False
        assert group.share_token
        assert group.items.count() == 0
        assert group.approved_count == 1

    def test_create_group_with_items(self, group_owner, product, other_product):
        group = create_group(
            name="Stocked",
            owner=group_owner,
            items=[(product.id, 2), (other_product.id, 4)],
        )

        quantities = dict(group.items.values_list('product_id', 'quantity'))
        assert quantities == {product.id: 2, other_product.id: 4}

    def test_create_group_rejects_duplicate_items(self, group_owner, product):
        with pytest.raises(DuplicateItemError):
            create_group(name="Dup", owner=group_owner, items=[(product.id, 1), (product.id, 2)])

        assert not Group.objects.filter(name="Dup").exists()

    def test_create_group_rejects_zero_quantity(self, group_owner, product):
        with pytest.raises(InvalidQuantityError):
            create_group(name="Zero", owner=group_owner, items=[(product.id, 0)])

    def test_create_group_unknown_product(self, group_owner):
        with pytest.raises(DependencyFailureError):
            create_group(name="Ghost", owner=group_owner, items=[(uuid4(), 1)])

    def test_create_group_generates_unique_share_token(self, group_owner):
        group1 = create_group(name="Group 1", owner=group_owner)
        group2 = create_group(name="Group 2", owner=group_owner)

        assert group1.share_token != group2.share_token

    @pytest.mark.django_db(transaction=True)
    def test_create_group_retries_on_collision(self, group_owner):
        """Service retries if the share token collides (unlikely but possible)."""
        with patch('apps.groups.services.group_management.generate_share_token') as mock_token:
            mock_token.return_value = 'same-token'

            create_group(name="Group 1", owner=group_owner)

            with pytest.raises(RuntimeError, match="Failed to generate unique share token"):
                create_group(name="Group 2", owner=group_owner)

        assert mock_token.call_count == 6

    def test_create_pickup_group_requires_address(self, group_owner):
        with pytest.raises(InvalidPickupAddressError):
            create_group(name="Pickup", owner=group_owner, delivery_method=DeliveryMethod.PICKUP)

    def test_create_pickup_group_rejects_foreign_address(self, shopper, pickup_address):
        with pytest.raises(InvalidPickupAddressError):
            create_group(
                name="Pickup",
                owner=shopper,
                delivery_method=DeliveryMethod.PICKUP,
                pickup_address_id=pickup_address.id,
            )

    def test_create_pickup_group(self, group_owner, pickup_address):
        group = create_group(
            name="Pickup",
            owner=group_owner,
            delivery_method=DeliveryMethod.PICKUP,
            pickup_address_id=pickup_address.id,
        )

        assert group.pickup_address == pickup_address

    def test_create_group_from_cart(self, group_owner, product, other_product):
        CartItem.objects.create(user=group_owner, product=product, quantity=2)
        CartItem.objects.create(user=group_owner, product=other_product, quantity=1)

        group = create_group_from_cart(name="  From Cart  ", owner=group_owner)

        assert group.name == "From Cart"
        assert group.description == "A curated collection of 2 items for group buying"
        assert dict(group.items.values_list('product_id', 'quantity')) == {
            product.id: 2,
            other_product.id: 1,
        }
        assert not CartItem.objects.filter(user=group_owner).exists()

    def test_create_group_from_empty_cart(self, group_owner):
        with pytest.raises(EmptyCartError):
            create_group_from_cart(name="Nothing", owner=group_owner)

    def test_get_group_by_id_success(self, group):
        retrieved = get_group_by_id(group_id=group.id)

        assert retrieved.id == group.id
        assert retrieved.name == group.name

    def test_get_group_by_id_not_found(self):
        with pytest.raises(GroupNotFoundError):
            get_group_by_id(group_id=uuid4())

    def test_get_group_by_id_malformed(self):
        with pytest.raises(GroupNotFoundError):
            get_group_by_id(group_id='not-a-uuid')

    def test_get_group_by_share_token(self, private_group):
        assert get_group_by_share_token(share_token=private_group.share_token).id == private_group.id

        with pytest.raises(GroupNotFoundError):
            get_group_by_share_token(share_token='nope')

    def test_list_public_groups(self, group, private_group, shopper):
        other = create_group(name="Shopper's", owner=shopper)

        listed = set(list_public_groups().values_list('id', flat=True))
        assert listed == {group.id, other.id}

        listed = set(list_public_groups(exclude_owner=shopper).values_list('id', flat=True))
        assert listed == {group.id}

    def test_update_group_success(self, group, group_owner):
        updated = update_group(
            group_id=group.id,
            user=group_owner,
            name="Renamed",
            is_public=False,
        )

        assert updated.name == "Renamed"
        assert updated.is_public is False

    def test_update_group_switch_to_delivery_clears_address(self, group_owner, pickup_address):
        group = create_group(
            name="Pickup",
            owner=group_owner,
            delivery_method=DeliveryMethod.PICKUP,
            pickup_address_id=pickup_address.id,
        )

        updated = update_group(group_id=group.id, user=group_owner, delivery_method=DeliveryMethod.DELIVERY)

        assert updated.delivery_method == DeliveryMethod.DELIVERY
        assert updated.pickup_address is None

    def test_update_group_non_owner(self, group, shopper):
        with pytest.raises(InsufficientPermissionsError):
            update_group(group_id=group.id, user=shopper, name="Hijacked")

    def test_update_group_payment_locked(self, group, group_owner):
        Group.objects.filter(id=group.id).update(payment_locked=True)

        with pytest.raises(GroupLockedError):
            update_group(group_id=group.id, user=group_owner, name="Too late")

    def test_delete_group_cascades(self, group_with_member, group_owner):
        group_id = group_with_member.id

        delete_group(group_id=group_id, user=group_owner)

        assert not Group.objects.filter(id=group_id).exists()
        assert not GroupItem.objects.filter(group_id=group_id).exists()
        assert not GroupParticipant.objects.filter(group_id=group_id).exists()

    def test_delete_group_non_owner(self, group, shopper):
        with pytest.raises(InsufficientPermissionsError):
            delete_group(group_id=group.id, user=shopper)

        assert Group.objects.filter(id=group.id).exists()

    def test_delete_group_refused_after_payment(self, full_group, group_owner, member_user):
        record_payment(group_id=full_group.id, user_id=member_user.id, amount=Decimal('24.00'))

        with pytest.raises(GroupLockedError):
            delete_group(group_id=full_group.id, user=group_owner)

        assert Group.objects.filter(id=full_group.id).exists()


# =============================================================================
# Ledger Service Tests
# =============================================================================

@pytest.mark.django_db
class TestLedger:
    """Tests for ledger.py item operations and totals."""

    def test_add_item_success(self, group, group_owner, product):
        item = add_item(group_id=group.id, product_id=product.id, quantity=2, user=group_owner)

        assert item.quantity == 2
        assert group.items.count() == 1

    def test_add_item_non_owner(self, group, shopper, product):
        with pytest.raises(InsufficientPermissionsError):
            add_item(group_id=group.id, product_id=product.id, quantity=1, user=shopper)

    def test_add_item_invalid_quantity(self, group, group_owner, product):
        with pytest.raises(InvalidQuantityError):
            add_item(group_id=group.id, product_id=product.id, quantity=0, user=group_owner)

    def test_add_item_duplicate(self, group_with_item, group_owner, product):
        with pytest.raises(DuplicateItemError):
            add_item(group_id=group_with_item.id, product_id=product.id, quantity=1, user=group_owner)

        assert group_with_item.items.get(product=product).quantity == 3

    def test_add_item_unknown_product(self, group, group_owner):
        with pytest.raises(DependencyFailureError):
            add_item(group_id=group.id, product_id=uuid4(), quantity=1, user=group_owner)

    def test_add_item_inactive_product(self, group, group_owner, product):
        Product.objects.filter(id=product.id).update(is_active=False)

        with pytest.raises(DependencyFailureError):
            add_item(group_id=group.id, product_id=product.id, quantity=1, user=group_owner)

    def test_add_item_group_not_found(self, group_owner, product):
        with pytest.raises(GroupNotFoundError):
            add_item(group_id=uuid4(), product_id=product.id, quantity=1, user=group_owner)

    def test_set_quantity_in_place(self, group_with_item, group_owner, product):
        item = set_quantity(group_id=group_with_item.id, product_id=product.id, quantity=7, user=group_owner)

        assert item.quantity == 7
        assert group_with_item.items.count() == 1

    def test_set_quantity_zero_removes_item(self, group_with_item, group_owner, product):
        """Reaching zero deletes the row instead of storing quantity 0."""
        result = set_quantity(group_id=group_with_item.id, product_id=product.id, quantity=0, user=group_owner)

        assert result is None
        assert not GroupItem.objects.filter(group=group_with_item, product=product).exists()

    def test_set_quantity_negative_removes_item(self, group_with_item, group_owner, product):
        assert set_quantity(
            group_id=group_with_item.id, product_id=product.id, quantity=-2, user=group_owner
        ) is None
        assert group_with_item.items.count() == 0

    def test_set_quantity_missing_item(self, group, group_owner, product):
        with pytest.raises(ItemNotFoundError):
            set_quantity(group_id=group.id, product_id=product.id, quantity=2, user=group_owner)

    def test_remove_item(self, group_with_item, group_owner, product):
        assert remove_item(group_id=group_with_item.id, product_id=product.id, user=group_owner) is True
        assert group_with_item.items.count() == 0

    def test_remove_absent_item_is_noop(self, group, group_owner, product):
        assert remove_item(group_id=group.id, product_id=product.id, user=group_owner) is False

    def test_group_totals(self, group, group_owner, product, other_product, untiered_product):
        add_item(group_id=group.id, product_id=product.id, quantity=3, user=group_owner)
        add_item(group_id=group.id, product_id=other_product.id, quantity=2, user=group_owner)
        add_item(group_id=group.id, product_id=untiered_product.id, quantity=2, user=group_owner)

        totals = get_group_totals(group_id=group.id)

        # 30.00 + 8.00 + 3.00 at original prices; 24.00 + 6.00 + 3.00 at group prices
        assert totals.total_value == Decimal('41.00')
        assert totals.discounted_value == Decimal('33.00')
        assert totals.potential_savings == Decimal('8.00')
        assert totals.item_count == 3

    def test_group_totals_empty(self, group):
        totals = get_group_totals(group_id=group.id)

        assert totals.total_value == Decimal('0.00')
        assert totals.potential_savings == Decimal('0.00')
        assert totals.item_count == 0


# =============================================================================
# Payment Tests
# =============================================================================

@pytest.mark.django_db
class TestPayments:
    """Tests for record_payment and the payment lock."""

    def test_record_payment_locks_group(self, full_group, member_user):
        payment = record_payment(
            group_id=full_group.id,
            user_id=member_user.id,
            amount=Decimal('24.00'),
            payment_reference='pi_123',
        )

        full_group.refresh_from_db()
        assert payment.amount == Decimal('24.00')
        assert payment.paid_at is not None
        assert full_group.payment_locked is True

    def test_record_payment_by_owner(self, full_group, group_owner):
        record_payment(group_id=full_group.id, user_id=group_owner.id, amount=Decimal('5.00'))

        full_group.refresh_from_db()
        assert full_group.payment_locked is True

    def test_record_payment_is_idempotent(self, full_group, member_user):
        first = record_payment(group_id=full_group.id, user_id=member_user.id, amount=Decimal('24.00'))
        second = record_payment(group_id=full_group.id, user_id=member_user.id, amount=Decimal('99.00'))

        assert second.id == first.id
        assert second.amount == Decimal('24.00')
        assert GroupPayment.objects.filter(group=full_group).count() == 1

    def test_record_payment_before_group_is_full(self, group_with_member, member_user):
        with pytest.raises(GroupNotReadyForPaymentError):
            record_payment(group_id=group_with_member.id, user_id=member_user.id, amount=Decimal('24.00'))

        group_with_member.refresh_from_db()
        assert group_with_member.payment_locked is False
        assert not GroupPayment.objects.filter(group=group_with_member).exists()

    def test_record_payment_without_items(self, group, group_owner, member_user, make_users, approve):
        approve(group, member_user, *make_users(3, prefix='empty'))
        assert group.approved_count == MAX_GROUP_MEMBERS

        with pytest.raises(GroupNotReadyForPaymentError):
            record_payment(group_id=group.id, user_id=group_owner.id, amount=Decimal('5.00'))

        group.refresh_from_db()
        assert group.payment_locked is False

    def test_record_payment_after_member_left(self, full_group, group_owner, member_user):
        remove_participant(group_id=full_group.id, user_id=member_user.id, removed_by=group_owner)

        with pytest.raises(GroupNotReadyForPaymentError):
            record_payment(group_id=full_group.id, user_id=group_owner.id, amount=Decimal('5.00'))

    def test_record_payment_non_member(self, full_group, shopper):
        with pytest.raises(ParticipantNotApprovedError):
            record_payment(group_id=full_group.id, user_id=shopper.id, amount=Decimal('10.00'))

        full_group.refresh_from_db()
        assert full_group.payment_locked is False

    def test_record_payment_pending_participant(self, group_with_item, shopper):
        request_join(group_id=group_with_item.id, user=shopper)

        with pytest.raises(ParticipantNotApprovedError):
            record_payment(group_id=group_with_item.id, user_id=shopper.id, amount=Decimal('10.00'))

    def test_record_payment_invalid_amount(self, full_group, member_user):
        with pytest.raises(InvalidAmountError):
            record_payment(group_id=full_group.id, user_id=member_user.id, amount=Decimal('0'))

    def test_payment_on_behalf_of_member(self, full_group, member_user, group_owner):
        payment = record_payment(
            group_id=full_group.id,
            user_id=member_user.id,
            amount=Decimal('24.00'),
            payer=group_owner,
        )

        assert payment.user == member_user
        assert payment.payer == group_owner

    def test_payment_status(self, full_group, group_owner, member_user):
        record_payment(group_id=full_group.id, user_id=member_user.id, amount=Decimal('24.00'))

        rows = get_payment_status(group_id=full_group.id)

        assert len(rows) == MAX_GROUP_MEMBERS
        assert [row['user_id'] for row in rows[:2]] == [group_owner.id, member_user.id]
        assert rows[0]['is_owner'] is True
        assert rows[0]['has_paid'] is False
        assert rows[1]['has_paid'] is True
        assert rows[1]['amount'] == Decimal('24.00')
        assert not any(row['has_paid'] for row in rows[2:])

    def test_payment_lock_is_monotonic(self, full_group, group_owner, member_user, product,
                                       other_product, make_users):
        """Item writes stay refused after any later participant transitions."""
        record_payment(group_id=full_group.id, user_id=member_user.id, amount=Decimal('24.00'))

        leaving = GroupParticipant.objects.filter(group=full_group).exclude(user=member_user).first()
        remove_participant(group_id=full_group.id, user_id=leaving.user_id, removed_by=group_owner)
        newcomer, rejected = make_users(2, prefix='late')
        request_join(group_id=full_group.id, user=newcomer)
        request_join(group_id=full_group.id, user=rejected)
        approve_participant(group_id=full_group.id, user_id=newcomer.id, approved_by=group_owner)
        reject_participant(group_id=full_group.id, user_id=rejected.id, rejected_by=group_owner)

        with pytest.raises(GroupLockedError):
            add_item(group_id=full_group.id, product_id=other_product.id, quantity=1, user=group_owner)
        with pytest.raises(GroupLockedError):
            set_quantity(group_id=full_group.id, product_id=product.id, quantity=9, user=group_owner)
        with pytest.raises(GroupLockedError):
            set_quantity(group_id=full_group.id, product_id=product.id, quantity=0, user=group_owner)
        with pytest.raises(GroupLockedError):
            remove_item(group_id=full_group.id, product_id=product.id, user=group_owner)

        full_group.refresh_from_db()
        assert full_group.payment_locked is True
        assert full_group.items.get(product=product).quantity == 3


# =============================================================================
# Participant State Machine Tests
# =============================================================================

@pytest.mark.django_db
class TestParticipantManagement:
    """Tests for participant_management.py transitions."""

    def test_request_join_creates_pending(self, group, shopper):
        participant = request_join(group_id=group.id, user=shopper)

        assert participant.status == ParticipantStatus.PENDING
        assert group.approved_count == 1

    def test_request_join_twice_returns_existing(self, group, shopper):
        first = request_join(group_id=group.id, user=shopper)
        second = request_join(group_id=group.id, user=shopper)

        assert first.id == second.id
        assert GroupParticipant.objects.filter(group=group, user=shopper).count() == 1

    def test_request_join_owner(self, group, group_owner):
        with pytest.raises(AlreadyApprovedError):
            request_join(group_id=group.id, user=group_owner)

    def test_request_join_already_approved(self, group_with_member, member_user):
        with pytest.raises(AlreadyApprovedError):
            request_join(group_id=group_with_member.id, user=member_user)

    def test_request_join_full_group(self, full_group, shopper):
        with pytest.raises(GroupAtCapacityError):
            request_join(group_id=full_group.id, user=shopper)

    def test_request_join_private_group_needs_token(self, private_group, shopper):
        with pytest.raises(InvalidShareTokenError):
            request_join(group_id=private_group.id, user=shopper)

        with pytest.raises(InvalidShareTokenError):
            request_join(group_id=private_group.id, user=shopper, share_token='wrong')

        participant = request_join(
            group_id=private_group.id,
            user=shopper,
            share_token=private_group.share_token,
        )
        assert participant.status == ParticipantStatus.PENDING

    def test_rerequest_after_rejection(self, group, group_owner, shopper):
        request_join(group_id=group.id, user=shopper)
        reject_participant(group_id=group.id, user_id=shopper.id, rejected_by=group_owner)

        participant = request_join(group_id=group.id, user=shopper)

        assert participant.status == ParticipantStatus.PENDING
        assert GroupParticipant.objects.filter(group=group, user=shopper).count() == 1

    def test_approve_participant(self, group, group_owner, shopper):
        request_join(group_id=group.id, user=shopper)

        participant = approve_participant(group_id=group.id, user_id=shopper.id, approved_by=group_owner)

        assert participant.status == ParticipantStatus.APPROVED
        assert group.approved_count == 2

    def test_approve_non_owner(self, group, shopper, member_user):
        request_join(group_id=group.id, user=shopper)

        with pytest.raises(InsufficientPermissionsError):
            approve_participant(group_id=group.id, user_id=shopper.id, approved_by=member_user)

    def test_approve_not_pending(self, group, group_owner, shopper):
        with pytest.raises(NotPendingError):
            approve_participant(group_id=group.id, user_id=shopper.id, approved_by=group_owner)

    def test_approve_rejected_user(self, group, group_owner, shopper):
        request_join(group_id=group.id, user=shopper)
        reject_participant(group_id=group.id, user_id=shopper.id, rejected_by=group_owner)

        with pytest.raises(NotPendingError):
            approve_participant(group_id=group.id, user_id=shopper.id, approved_by=group_owner)

    def test_reject_participant(self, group, group_owner, shopper):
        request_join(group_id=group.id, user=shopper)

        participant = reject_participant(group_id=group.id, user_id=shopper.id, rejected_by=group_owner)

        assert participant.status == ParticipantStatus.REJECTED

    def test_reject_not_pending(self, group_with_member, group_owner, member_user):
        with pytest.raises(NotPendingError):
            reject_participant(group_id=group_with_member.id, user_id=member_user.id, rejected_by=group_owner)

    def test_remove_participant_by_owner(self, group_with_member, group_owner, member_user):
        remove_participant(group_id=group_with_member.id, user_id=member_user.id, removed_by=group_owner)

        assert not GroupParticipant.objects.filter(group=group_with_member, user=member_user).exists()
        assert group_with_member.approved_count == 1

    def test_remove_participant_self(self, group_with_member, member_user):
        remove_participant(group_id=group_with_member.id, user_id=member_user.id, removed_by=member_user)

        assert not group_with_member.has_member(member_user)

    def test_remove_participant_by_stranger(self, group_with_member, member_user, shopper):
        with pytest.raises(InsufficientPermissionsError):
            remove_participant(group_id=group_with_member.id, user_id=member_user.id, removed_by=shopper)

    def test_remove_owner(self, group, group_owner):
        with pytest.raises(CannotRemoveOwnerError):
            remove_participant(group_id=group.id, user_id=group_owner.id, removed_by=group_owner)

    def test_remove_pending_user(self, group, group_owner, shopper):
        request_join(group_id=group.id, user=shopper)

        with pytest.raises(NotApprovedError):
            remove_participant(group_id=group.id, user_id=shopper.id, removed_by=group_owner)

    def test_removal_reopens_full_group(self, full_group, group_owner, member_user, shopper):
        remove_participant(group_id=full_group.id, user_id=member_user.id, removed_by=group_owner)

        participant = request_join(group_id=full_group.id, user=shopper)
        assert participant.status == ParticipantStatus.PENDING

    def test_add_participant_directly(self, group, group_owner, shopper):
        participant = add_participant_directly(group_id=group.id, user_id=shopper.id, added_by=group_owner)

        assert participant.status == ParticipantStatus.APPROVED

    def test_add_participant_directly_promotes_pending(self, group, group_owner, shopper):
        request_join(group_id=group.id, user=shopper)

        add_participant_directly(group_id=group.id, user_id=shopper.id, added_by=group_owner)

        assert GroupParticipant.objects.get(group=group, user=shopper).status == ParticipantStatus.APPROVED

    def test_add_participant_directly_errors(self, full_group, group_owner, member_user, shopper):
        with pytest.raises(InsufficientPermissionsError):
            add_participant_directly(group_id=full_group.id, user_id=shopper.id, added_by=member_user)
        with pytest.raises(UserNotFoundError):
            add_participant_directly(group_id=full_group.id, user_id=uuid4(), added_by=group_owner)
        with pytest.raises(AlreadyApprovedError):
            add_participant_directly(group_id=full_group.id, user_id=member_user.id, added_by=group_owner)
        with pytest.raises(GroupAtCapacityError):
            add_participant_directly(group_id=full_group.id, user_id=shopper.id, added_by=group_owner)

    def test_participation_status(self, group, group_owner, shopper):
        assert get_participation_status(group_id=group.id, user=group_owner) == {
            'status': 'owner',
            'is_owner': True,
            'is_pending': False,
            'is_approved': True,
        }
        assert get_participation_status(group_id=group.id, user=shopper)['status'] is None

        request_join(group_id=group.id, user=shopper)
        status = get_participation_status(group_id=group.id, user=shopper)
        assert status['is_pending'] is True
        assert status['is_approved'] is False

    def test_pending_participants_owner_only(self, group, group_owner, shopper):
        request_join(group_id=group.id, user=shopper)

        pending = get_pending_participants(group_id=group.id, user=group_owner)
        assert [p.user_id for p in pending] == [shopper.id]

        with pytest.raises(InsufficientPermissionsError):
            get_pending_participants(group_id=group.id, user=shopper)

    def test_approved_participants_members_only(self, group_with_member, member_user, shopper):
        approved = get_approved_participants(group_id=group_with_member.id, user=member_user)
        assert [p.user_id for p in approved] == [member_user.id]

        with pytest.raises(InsufficientPermissionsError):
            get_approved_participants(group_id=group_with_member.id, user=shopper)


# =============================================================================
# Capacity Tests
# =============================================================================

@pytest.mark.django_db
class TestCapacity:
    """The owner plus four approved participants fill a group."""

    def test_fifth_member_locks_capacity(self, group, group_owner, make_users):
        """Scenario: owner + 3 approved, the 4th approval fills the group."""
        users = make_users(5)
        for user in users[:3]:
            request_join(group_id=group.id, user=user)
            approve_participant(group_id=group.id, user_id=user.id, approved_by=group_owner)
        request_join(group_id=group.id, user=users[3])

        assert get_payment_eligibility(group_id=group.id)['capacity_locked'] is False

        approve_participant(group_id=group.id, user_id=users[3].id, approved_by=group_owner)

        group.refresh_from_db()
        assert group.approved_count == MAX_GROUP_MEMBERS
        assert group.capacity_locked is True
        assert get_payment_eligibility(group_id=group.id)['capacity_locked'] is True

        with pytest.raises(GroupAtCapacityError):
            request_join(group_id=group.id, user=users[4])

    def test_approval_refused_when_full(self, group, group_owner, make_users):
        """Pending requests made before the group filled cannot be approved."""
        users = make_users(6)
        for user in users:
            request_join(group_id=group.id, user=user)

        outcomes = []
        for user in users:
            try:
                approve_participant(group_id=group.id, user_id=user.id, approved_by=group_owner)
                outcomes.append('approved')
            except GroupAtCapacityError:
                outcomes.append('full')

        assert outcomes == ['approved'] * 4 + ['full'] * 2
        assert group.approved_count == MAX_GROUP_MEMBERS
        assert GroupParticipant.objects.filter(
            group=group, status=ParticipantStatus.PENDING
        ).count() == 2


# =============================================================================
# Payment Eligibility Tests
# =============================================================================

@pytest.mark.django_db
class TestPaymentEligibility:

    def test_eligibility_counts(self, group_with_member):
        eligibility = get_payment_eligibility(group_id=group_with_member.id)

        assert eligibility['approved_count'] == 2
        assert eligibility['spots_left'] == 3
        assert eligibility['capacity_locked'] is False
        assert eligibility['payment_locked'] is False
        assert eligibility['paid_count'] == 0

    def test_eligibility_is_cached(self, group):
        get_payment_eligibility(group_id=group.id)

        assert cache.get(payment_eligibility_cache_key(group.id)) is not None

    def test_transition_invalidates_cache(self, group, group_owner, shopper):
        assert get_payment_eligibility(group_id=group.id)['approved_count'] == 1

        request_join(group_id=group.id, user=shopper)
        assert cache.get(payment_eligibility_cache_key(group.id)) is None
        approve_participant(group_id=group.id, user_id=shopper.id, approved_by=group_owner)

        assert get_payment_eligibility(group_id=group.id)['approved_count'] == 2

    def test_payment_invalidates_cache(self, full_group, member_user):
        assert get_payment_eligibility(group_id=full_group.id)['payment_locked'] is False

        record_payment(group_id=full_group.id, user_id=member_user.id, amount=Decimal('24.00'))

        eligibility = get_payment_eligibility(group_id=full_group.id)
        assert eligibility['payment_locked'] is True
        assert eligibility['paid_count'] == 1

    def test_ready_for_payment_needs_items(self, full_group, group_owner, product):
        assert get_payment_eligibility(group_id=full_group.id)['ready_for_payment'] is True

        remove_item(group_id=full_group.id, product_id=product.id, user=group_owner)

        eligibility = get_payment_eligibility(group_id=full_group.id)
        assert eligibility['capacity_locked'] is True
        assert eligibility['ready_for_payment'] is False


# =============================================================================
# Snapshot Tests
# =============================================================================

@pytest.mark.django_db
class TestSnapshots:

    def test_snapshot_from_group(self, group_with_member, group_owner, member_user, shopper, product):
        request_join(group_id=group_with_member.id, user=shopper)
        group = Group.objects.prefetch_related('items', 'participants').get(id=group_with_member.id)

        snapshot = GroupSnapshot.from_group(group)

        assert snapshot.items == {product.id: 3}
        assert snapshot.approved_user_ids == frozenset({member_user.id})
        assert snapshot.approved_count == 2
        assert snapshot.is_full is False
        assert snapshot.has_member(group_owner.id)
        assert snapshot.has_member(member_user.id)
        assert not snapshot.has_member(shopper.id)
        assert not snapshot.has_member(None)

    def test_public_snapshots_skip_private_groups(self, group, private_group):
        ids = [snapshot.group_id for snapshot in get_public_group_snapshots()]

        assert ids == [group.id]


# =============================================================================
# Concurrency Tests
# =============================================================================

class TestConcurrency(TransactionTestCase):
    """
    Tests for concurrency protection using TransactionTestCase.

    Note: TransactionTestCase is required for testing actual database
    transactions and concurrency. Regular TestCase wraps tests in
    a transaction, which doesn't allow testing real concurrency.
    """

    def setUp(self):
        """Create test fixtures."""
        from apps.accounts.models import User

        self.owner = User.objects.create_user(
            email='owner@test.com',
            password='TestPass123!',
            display_name='Owner',
        )
        self.group = Group.objects.create(name='Test Group', owner=self.owner)

        # Owner + 3 approved: one slot left
        for i in range(3):
            member = User.objects.create_user(email=f'member{i}@test.com', password='TestPass123!')
            GroupParticipant.objects.create(
                group=self.group,
                user=member,
                status=ParticipantStatus.APPROVED
            )

        self.candidates = []
        for i in range(2):
            candidate = User.objects.create_user(email=f'candidate{i}@test.com', password='TestPass123!')
            GroupParticipant.objects.create(
                group=self.group,
                user=candidate,
                status=ParticipantStatus.PENDING
            )
            self.candidates.append(candidate)

    def test_concurrent_approvals_respect_capacity(self):
        """
        Two approvals racing for the last slot must not both succeed.

        select_for_update() on the group row serializes the
        check-then-write in approve_participant().
        """
        results = []
        errors = []

        def approve_candidate(candidate):
            """Approve in a thread."""
            try:
                results.append(approve_participant(
                    group_id=self.group.id,
                    user_id=candidate.id,
                    approved_by=self.owner
                ))
            except GroupAtCapacityError as e:
                errors.append((candidate, str(e)))
            except Exception as e:
                # SQLite may refuse the second writer instead of queueing it
                errors.append((candidate, f"Unexpected error: {str(e)}"))

        threads = [
            threading.Thread(target=approve_candidate, args=(candidate,))
            for candidate in self.candidates
        ]

        for thread in threads:
            thread.start()

        for thread in threads:
            thread.join()

        assert len(results) <= 1, f"Expected at most one approval, got {len(results)}"
        approved = GroupParticipant.objects.filter(
            group=self.group,
            status=ParticipantStatus.APPROVED
        ).count()
        assert 1 + approved <= MAX_GROUP_MEMBERS

    def test_concurrent_payments_record_once(self):
        """Duplicate payment notifications store a single payment."""
        # Fill the last slot and give the group something to pay for
        GroupParticipant.objects.filter(
            group=self.group,
            user=self.candidates[0]
        ).update(status=ParticipantStatus.APPROVED)
        product = Product.objects.create(name='Rice', original_price=Decimal('10.00'))
        GroupItem.objects.create(group=self.group, product=product, quantity=1)

        member = GroupParticipant.objects.filter(
            group=self.group,
            status=ParticipantStatus.APPROVED
        ).first().user
        errors = []

        def pay():
            try:
                record_payment(group_id=self.group.id, user_id=member.id, amount=Decimal('10.00'))
            except Exception as e:
                errors.append(str(e))

        threads = [threading.Thread(target=pay) for _ in range(3)]

        for thread in threads:
            thread.start()

        for thread in threads:
            thread.join()

        assert GroupPayment.objects.filter(group=self.group, user=member).count() <= 1
        if not errors:
            assert GroupPayment.objects.filter(group=self.group, user=member).count() == 1


# =============================================================================
# Integration Tests
# =============================================================================

@pytest.mark.django_db
class TestServiceIntegration:
    """Integration tests for service workflows."""

    def test_full_group_lifecycle(self, group_owner, product, make_users):
        """Create, fill, pay, then the items are frozen."""
        group = create_group(name="Lifecycle", owner=group_owner, items=[(product.id, 5)])

        users = make_users(4)
        for user in users:
            request_join(group_id=group.id, user=user)
            approve_participant(group_id=group.id, user_id=user.id, approved_by=group_owner)

        assert get_payment_eligibility(group_id=group.id)['ready_for_payment'] is True

        record_payment(group_id=group.id, user_id=users[0].id, amount=Decimal('40.00'))

        with pytest.raises(GroupLockedError):
            set_quantity(group_id=group.id, product_id=product.id, quantity=1, user=group_owner)

        # Participants may still leave after the lock
        remove_participant(group_id=group.id, user_id=users[3].id, removed_by=users[3])
        assert get_payment_eligibility(group_id=group.id)['capacity_locked'] is False

        with pytest.raises(GroupLockedError):
            delete_group(group_id=group.id, user=group_owner)
