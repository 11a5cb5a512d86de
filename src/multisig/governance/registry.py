"""Approver registry — the fixed approver set and quorum threshold.

Validated once at construction and immutable afterwards, so no later
call needs to re-check uniqueness or bounds. Each approver owns a fixed
slot (its position in the supplied order); confirmation records are
keyed by that slot.

Construction fails if:
- the approver list is empty,
- any identity is null, empty, or the zero address,
- any identity appears twice,
- threshold is not an integer in (0, len(approvers)].
"""

from __future__ import annotations

from typing import Iterable, Optional

from multisig.errors import InvalidConfiguration, Unauthorized


ZERO_ADDRESS = "0x" + "0" * 40


def is_zero_identity(identity: Optional[str]) -> bool:
    """True for None, blank strings, and the all-zero hex address."""
    if identity is None:
        return True
    if not isinstance(identity, str):
        return False
    stripped = identity.strip()
    if not stripped:
        return True
    if stripped.lower().startswith("0x"):
        digits = stripped[2:]
        return bool(digits) and set(digits) == {"0"}
    return False


class ApproverRegistry:
    """Immutable approver membership and threshold.

    Usage:
        registry = ApproverRegistry(["alice", "bob", "carol"], threshold=2)
        registry.is_approver("bob")   # True
        registry.slot_of("carol")     # 2
    """

    def __init__(self, approvers: Iterable[str], threshold: int) -> None:
        ordered = list(approvers)
        if not ordered:
            raise InvalidConfiguration("Approver set must not be empty")

        slots: dict[str, int] = {}
        for position, approver in enumerate(ordered):
            if is_zero_identity(approver):
                raise InvalidConfiguration(
                    f"Approver at position {position} is a null or zero identity"
                )
            if not isinstance(approver, str):
                raise InvalidConfiguration(
                    f"Approver at position {position} must be a string, "
                    f"got {type(approver).__name__}"
                )
            if approver in slots:
                raise InvalidConfiguration(f"Duplicate approver: {approver}")
            slots[approver] = position

        if isinstance(threshold, bool) or not isinstance(threshold, int):
            raise InvalidConfiguration(
                f"Threshold must be an integer, got {type(threshold).__name__}"
            )
        if not 0 < threshold <= len(ordered):
            raise InvalidConfiguration(
                f"Threshold {threshold} out of range: must be in (0, {len(ordered)}]"
            )

        self._approvers: tuple[str, ...] = tuple(ordered)
        self._slots = slots
        self._threshold = threshold

    @property
    def approvers(self) -> list[str]:
        """Approver ids in registration order."""
        return list(self._approvers)

    @property
    def threshold(self) -> int:
        return self._threshold

    @property
    def size(self) -> int:
        return len(self._approvers)

    def is_approver(self, identity: object) -> bool:
        """Pure membership check."""
        return isinstance(identity, str) and identity in self._slots

    def slot_of(self, identity: str) -> int:
        """Fixed slot of an approver. Raises Unauthorized for non-members."""
        slot = self._slots.get(identity) if isinstance(identity, str) else None
        if slot is None:
            raise Unauthorized(f"Not an approver: {identity}")
        return slot

    def approver_at(self, slot: int) -> str:
        return self._approvers[slot]

    def __contains__(self, identity: object) -> bool:
        return self.is_approver(identity)

    def __len__(self) -> int:
        return len(self._approvers)

    def __repr__(self) -> str:
        return f"ApproverRegistry({self.size} approvers, threshold={self._threshold})"
