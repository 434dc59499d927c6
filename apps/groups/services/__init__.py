"""
Groups app services layer.

Services contain business logic and orchestrate operations across models.
All state-changing operations use transactions and per-group row locks.
"""

from .exceptions import (
    GroupsServiceError,
    GroupNotFoundError,
    InsufficientPermissionsError,
    UserNotFoundError,
    InvalidShareTokenError,
    DependencyFailureError,
    InvalidQuantityError,
    InvalidAmountError,
    DuplicateItemError,
    ItemNotFoundError,
    EmptyCartError,
    InvalidPickupAddressError,
    GroupLockedError,
    GroupAtCapacityError,
    NotPendingError,
    NotApprovedError,
    AlreadyApprovedError,
    CannotRemoveOwnerError,
    ParticipantNotApprovedError,
    GroupNotReadyForPaymentError,
)

from .group_management import (
    create_group,
    create_group_from_cart,
    get_group_by_id,
    get_group_by_share_token,
    list_public_groups,
    update_group,
    delete_group,
)

from .ledger import (
    GroupTotals,
    compute_totals,
    add_item,
    set_quantity,
    remove_item,
    get_group_items,
    get_group_totals,
    record_payment,
    get_payment_status,
)

from .participant_management import (
    request_join,
    approve_participant,
    reject_participant,
    remove_participant,
    add_participant_directly,
    get_participation_status,
    get_pending_participants,
    get_approved_participants,
)

from .eligibility import (
    get_payment_eligibility,
    invalidate_payment_eligibility,
)

from .selectors import fetch_group

from .snapshots import (
    GroupSnapshot,
    get_public_group_snapshots,
    product_ids_of,
    snapshot_groups,
)


__all__ = [
    # Exceptions
    'GroupsServiceError',
    'GroupNotFoundError',
    'InsufficientPermissionsError',
    'UserNotFoundError',
    'InvalidShareTokenError',
    'DependencyFailureError',
    'InvalidQuantityError',
    'InvalidAmountError',
    'DuplicateItemError',
    'ItemNotFoundError',
    'EmptyCartError',
    'InvalidPickupAddressError',
    'GroupLockedError',
    'GroupAtCapacityError',
    'NotPendingError',
    'NotApprovedError',
    'AlreadyApprovedError',
    'CannotRemoveOwnerError',
    'ParticipantNotApprovedError',
    'GroupNotReadyForPaymentError',

    # Group Management
    'create_group',
    'create_group_from_cart',
    'get_group_by_id',
    'get_group_by_share_token',
    'list_public_groups',
    'update_group',
    'delete_group',

    # Ledger
    'GroupTotals',
    'compute_totals',
    'add_item',
    'set_quantity',
    'remove_item',
    'get_group_items',
    'get_group_totals',
    'record_payment',
    'get_payment_status',

    # Participants
    'request_join',
    'approve_participant',
    'reject_participant',
    'remove_participant',
    'add_participant_directly',
    'get_participation_status',
    'get_pending_participants',
    'get_approved_participants',

    # Eligibility
    'get_payment_eligibility',
    'invalidate_payment_eligibility',

    # Lookups
    'fetch_group',

    # Snapshots
    'GroupSnapshot',
    'get_public_group_snapshots',
    'product_ids_of',
    'snapshot_groups',
]
