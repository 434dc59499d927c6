"""
Domain-specific exceptions for groups app.

These exceptions represent business rule violations and should be
caught in views and converted to appropriate HTTP responses.

Validation errors (InvalidQuantityError, InvalidAmountError,
DuplicateItemError, ItemNotFoundError, EmptyCartError) are
caller-correctable. State-conflict errors mean the operation is
invalid for the group's current state and will not succeed on retry.
DependencyFailureError wraps catalog and persistence failures.
"""

from apps.catalog.services.exceptions import InvalidQuantityError


class GroupsServiceError(Exception):
    """Base exception for all groups service errors."""
    pass


class GroupNotFoundError(GroupsServiceError):
    """Raised when a group does not exist or is inaccessible."""
    pass


class InsufficientPermissionsError(GroupsServiceError):
    """Raised when a user lacks required permissions for an action."""
    pass


class UserNotFoundError(GroupsServiceError):
    """Raised when the user to add does not exist."""
    pass


class InvalidShareTokenError(GroupsServiceError):
    """Raised when a private group is joined without its share token."""
    pass


class DependencyFailureError(GroupsServiceError):
    """Raised when the catalog or the database fails underneath an operation."""
    pass


# Validation errors

class InvalidAmountError(GroupsServiceError):
    """Raised when a payment amount is not positive."""
    pass


class DuplicateItemError(GroupsServiceError):
    """Raised when adding a product that is already in the group."""
    pass


class ItemNotFoundError(GroupsServiceError):
    """Raised when resizing a product that is not in the group."""
    pass


class EmptyCartError(GroupsServiceError):
    """Raised when creating a group from an empty cart."""
    pass


class InvalidPickupAddressError(GroupsServiceError):
    """Raised when pickup is chosen without a valid owner address."""
    pass


# State-conflict errors

class GroupLockedError(GroupsServiceError):
    """Raised when the group's items are frozen by a recorded payment."""
    pass


class GroupAtCapacityError(GroupsServiceError):
    """Raised when the group already has five approved members."""
    pass


class NotPendingError(GroupsServiceError):
    """Raised when approving/rejecting a user without a pending request."""
    pass


class NotApprovedError(GroupsServiceError):
    """Raised when removing a user who is not an approved participant."""
    pass


class AlreadyApprovedError(GroupsServiceError):
    """Raised when the user is already the owner or an approved participant."""
    pass


class CannotRemoveOwnerError(GroupsServiceError):
    """Raised when attempting to remove the group owner."""
    pass


class ParticipantNotApprovedError(GroupsServiceError):
    """Raised when recording a payment for a non-member."""
    pass


class GroupNotReadyForPaymentError(GroupsServiceError):
    """Raised when paying before the group is full or while it has no items."""
    pass


__all__ = [
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
]
