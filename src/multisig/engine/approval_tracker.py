"""Approval tracker — per-proposal, per-approver confirmation state.

The confirmation relation is a flat set of (proposal_id, approver slot)
pairs; a pair's presence means "confirmed". The derived count lives on
the proposal record and is adjusted in the same step as the relation, so
count == number of confirmed slots holds after every call.

Repeated confirmations and revocations of nothing are rejected, never
silently ignored. Neither is possible once the proposal has executed.
"""

from __future__ import annotations

from typing import Optional

from multisig.engine.guards import (
    caller_is_approver,
    currently_confirmed,
    enforce,
    not_executed,
    not_yet_confirmed,
    proposal_exists,
)
from multisig.engine.journal import Journal
from multisig.engine.proposal_store import ProposalStore
from multisig.governance.registry import ApproverRegistry
from multisig.models.proposal import Proposal


class ApprovalTracker:
    """Tracks which approvers have confirmed which proposals.

    Usage:
        tracker = ApprovalTracker(registry, store)
        tracker.confirm("alice", 0)
        tracker.is_confirmed(0, "alice")   # True
        tracker.revoke("alice", 0)
    """

    def __init__(
        self,
        registry: ApproverRegistry,
        store: ProposalStore,
        journal: Optional[Journal] = None,
    ) -> None:
        self._registry = registry
        self._store = store
        self._journal = journal or Journal()
        self._confirmed: set[tuple[int, int]] = set()

        self._confirm_guards = [
            proposal_exists(store),
            caller_is_approver(registry),
            not_executed(store),
            not_yet_confirmed(self),
        ]
        self._revoke_guards = [
            proposal_exists(store),
            caller_is_approver(registry),
            not_executed(store),
            currently_confirmed(self),
        ]

    def confirm(self, caller_id: str, proposal_id: int) -> Proposal:
        """Record the caller's confirmation and increment the count.

        Raises:
            NotFound, Unauthorized, AlreadyExecuted, AlreadyConfirmed
            (checked in that order).
        """
        enforce(self._confirm_guards, caller_id, proposal_id)
        key = (proposal_id, self._registry.slot_of(caller_id))
        self._add(key)
        proposal = self._store.get(proposal_id)
        return self._store.update(proposal.with_count(proposal.confirmation_count + 1))

    def revoke(self, caller_id: str, proposal_id: int) -> Proposal:
        """Withdraw the caller's confirmation and decrement the count.

        Raises:
            NotFound, Unauthorized, AlreadyExecuted, NotConfirmed
            (checked in that order).
        """
        enforce(self._revoke_guards, caller_id, proposal_id)
        key = (proposal_id, self._registry.slot_of(caller_id))
        self._discard(key)
        proposal = self._store.get(proposal_id)
        return self._store.update(proposal.with_count(proposal.confirmation_count - 1))

    def is_confirmed(self, proposal_id: int, approver_id: str) -> bool:
        """True if the approver currently confirms the proposal.

        Unknown proposals and non-approvers are simply not confirmed.
        """
        if not self._registry.is_approver(approver_id):
            return False
        return (proposal_id, self._registry.slot_of(approver_id)) in self._confirmed

    def confirmers(self, proposal_id: int) -> list[str]:
        """Approvers currently confirming the proposal, in registry order."""
        return [
            self._registry.approver_at(slot)
            for slot in range(self._registry.size)
            if (proposal_id, slot) in self._confirmed
        ]

    def count_for(self, proposal_id: int) -> int:
        """Count recomputed from the relation (the stored count must match)."""
        return sum(1 for pid, _ in self._confirmed if pid == proposal_id)

    def _add(self, key: tuple[int, int]) -> None:
        self._confirmed.add(key)
        self._journal.record(lambda: self._confirmed.discard(key))

    def _discard(self, key: tuple[int, int]) -> None:
        self._confirmed.discard(key)
        self._journal.record(lambda: self._confirmed.add(key))
