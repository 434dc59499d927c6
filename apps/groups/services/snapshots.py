"""
Read-only group snapshots.

Matching and coverage run over these frozen values instead of model
instances, so they never hold a group lock and never hit the database.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional
from uuid import UUID

from apps.groups.models import Group, MAX_GROUP_MEMBERS, ParticipantStatus


@dataclass(frozen=True)
class GroupSnapshot:
    group_id: UUID
    name: str
    owner_id: UUID
    items: Mapping[UUID, int] = field(default_factory=dict)
    approved_user_ids: FrozenSet[UUID] = frozenset()

    @classmethod
    def from_group(cls, group: Group) -> 'GroupSnapshot':
        """Build from a group with ``items`` and ``participants`` prefetched."""
        return cls(
            group_id=group.id,
            name=group.name,
            owner_id=group.owner_id,
            items={item.product_id: item.quantity for item in group.items.all()},
            approved_user_ids=frozenset(
                participant.user_id
                for participant in group.participants.all()
                if participant.status == ParticipantStatus.APPROVED
            ),
        )

    @property
    def approved_count(self) -> int:
        return 1 + len(self.approved_user_ids)

    @property
    def is_full(self) -> bool:
        return self.approved_count >= MAX_GROUP_MEMBERS

    def has_member(self, user_id: Optional[UUID]) -> bool:
        if user_id is None:
            return False
        return user_id == self.owner_id or user_id in self.approved_user_ids


def snapshot_groups(groups: Iterable[Group]) -> List[GroupSnapshot]:
    return [GroupSnapshot.from_group(group) for group in groups]


def get_public_group_snapshots() -> List[GroupSnapshot]:
    """Snapshots of every public group, newest first."""
    groups = (
        Group.objects
        .filter(is_public=True)
        .prefetch_related('items', 'participants')
    )
    return snapshot_groups(groups)


def product_ids_of(snapshots: Iterable[GroupSnapshot]) -> List[UUID]:
    """Distinct product ids across snapshots, in first-seen order."""
    seen: Dict[UUID, None] = {}
    for snapshot in snapshots:
        for product_id in snapshot.items:
            seen.setdefault(product_id, None)
    return list(seen)
