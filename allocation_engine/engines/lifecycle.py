"""
Allocation lifecycle state.

``AllocationState`` combines the lifecycle status and the lock flag into one
value so that every service asks the same questions through the same guards
instead of re-checking the two fields ad hoc.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet

from allocation_engine.core.exceptions import InvalidStateError, LockedError
from allocation_engine.models.allocation import AllocationStatus

_FORWARD: Dict[AllocationStatus, AllocationStatus] = {
    AllocationStatus.DRAFT: AllocationStatus.PENDING_APPROVAL,
    AllocationStatus.PENDING_APPROVAL: AllocationStatus.APPROVED,
    AllocationStatus.APPROVED: AllocationStatus.ACTIVE,
    AllocationStatus.ACTIVE: AllocationStatus.ARCHIVED,
}

# Reject sends a submitted allocation back for rework.
_BACKWARD: Dict[AllocationStatus, AllocationStatus] = {
    AllocationStatus.PENDING_APPROVAL: AllocationStatus.DRAFT,
}


@dataclass(frozen=True)
class AllocationState:
    status: AllocationStatus
    locked: bool = False

    @classmethod
    def of(cls, allocation) -> "AllocationState":
        return cls(status=AllocationStatus(allocation.status), locked=bool(allocation.locked))

    @property
    def is_archived(self) -> bool:
        return self.status == AllocationStatus.ARCHIVED

    def allowed_transitions(self) -> FrozenSet[AllocationStatus]:
        if self.locked or self.is_archived:
            return frozenset()
        targets = {AllocationStatus.ARCHIVED}
        if self.status in _FORWARD:
            targets.add(_FORWARD[self.status])
        if self.status in _BACKWARD:
            targets.add(_BACKWARD[self.status])
        return frozenset(targets)

    def can_mutate(self) -> bool:
        return not self.locked and not self.is_archived

    def can_distribute(self) -> bool:
        return self.can_mutate()

    def can_lock(self) -> bool:
        return not self.locked and not self.is_archived

    def can_unlock(self) -> bool:
        return self.locked

    def can_transition(self, target: AllocationStatus) -> bool:
        return AllocationStatus(target) in self.allowed_transitions()

    def require_mutable(self, operation: str = "modify") -> None:
        """Raise if the allocation cannot be changed structurally.

        The lock is checked before anything else.
        """
        if self.locked:
            raise LockedError(f"Cannot {operation} a locked allocation")
        if self.is_archived:
            raise InvalidStateError(f"Cannot {operation} an archived allocation")

    def require_lockable(self) -> None:
        if self.locked:
            raise InvalidStateError("Allocation is already locked")
        if self.is_archived:
            raise InvalidStateError("Archived allocations cannot be locked")

    def require_unlockable(self) -> None:
        if not self.locked:
            raise InvalidStateError("Allocation is not locked")

    def require_transition(self, target: AllocationStatus) -> None:
        if self.locked:
            raise LockedError("Cannot change the status of a locked allocation")
        if not self.can_transition(target):
            raise InvalidStateError(
                f"Cannot move allocation from {self.status.value} to {AllocationStatus(target).value}",
                {"allowed": sorted(s.value for s in self.allowed_transitions())},
            )

    def with_status(self, target: AllocationStatus) -> "AllocationState":
        self.require_transition(target)
        return AllocationState(status=AllocationStatus(target), locked=self.locked)
