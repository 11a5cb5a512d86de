"""Proposal store — append-only ledger of proposed actions.

Proposal ids are sequential from 0 and equal to the proposal's position
in the ledger. Proposals are never deleted. The store is the only writer
of proposal records; the approval tracker and execution engine change a
proposal's mutable fields through `update`, which swaps in a frozen
replacement and journals the previous version.

The store is pure state — no side effects. Event logging is handled by
the service layer.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from multisig.engine.guards import caller_is_approver, enforce
from multisig.engine.journal import Journal
from multisig.errors import InvalidProposal, NotFound
from multisig.governance.registry import ApproverRegistry
from multisig.models.proposal import Proposal, coerce_amount


def _coerce_payload(payload: object) -> bytes:
    if payload is None:
        return b""
    if isinstance(payload, (bytes, bytearray, memoryview)):
        return bytes(payload)
    raise InvalidProposal(
        f"Payload must be bytes-like, got {type(payload).__name__}"
    )


class ProposalStore:
    """Ledger of proposals indexed by sequential id.

    Usage:
        store = ProposalStore(registry)
        proposal = store.submit("alice", "0xabc...", Decimal("5"), b"")
        store.get(proposal.proposal_id)
    """

    def __init__(
        self,
        registry: ApproverRegistry,
        journal: Optional[Journal] = None,
    ) -> None:
        self._registry = registry
        self._journal = journal or Journal()
        self._proposals: list[Proposal] = []
        self._submit_guards = [caller_is_approver(registry)]

    def submit(
        self,
        caller_id: str,
        target: str,
        amount: object,
        payload: object = b"",
        now: Optional[datetime] = None,
    ) -> Proposal:
        """Append a new proposal with the next sequential id.

        Raises:
            Unauthorized: caller is not an approver.
            InvalidProposal: target empty, amount negative or not a number,
                or payload not bytes-like.
        """
        enforce(self._submit_guards, caller_id, len(self._proposals))

        if not isinstance(target, str) or not target.strip():
            raise InvalidProposal("Target must be a non-empty string")
        value = coerce_amount(amount, InvalidProposal)
        data = _coerce_payload(payload)
        if now is None:
            now = datetime.now(timezone.utc)

        proposal = Proposal(
            proposal_id=len(self._proposals),
            submitter_id=caller_id,
            target=target.strip(),
            amount=value,
            payload=data,
            created_utc=now,
        )
        self._append(proposal)
        return proposal

    def get(self, proposal_id: object) -> Proposal:
        """Return the current snapshot of a proposal.

        Raises NotFound for unknown or malformed ids.
        """
        if not self.exists(proposal_id):
            raise NotFound(f"Proposal not found: {proposal_id}")
        return self._proposals[proposal_id]  # type: ignore[index]

    def exists(self, proposal_id: object) -> bool:
        if isinstance(proposal_id, bool) or not isinstance(proposal_id, int):
            return False
        return 0 <= proposal_id < len(self._proposals)

    @property
    def count(self) -> int:
        return len(self._proposals)

    def proposals(self, executed: Optional[bool] = None) -> list[Proposal]:
        """List proposals, optionally only executed or only unexecuted ones."""
        if executed is None:
            return list(self._proposals)
        return [p for p in self._proposals if p.executed == executed]

    def update(self, proposal: Proposal) -> Proposal:
        """Replace a proposal's record with an updated copy.

        Only the mutable fields may differ from the stored record.
        """
        current = self.get(proposal.proposal_id)
        if (
            current.submitter_id != proposal.submitter_id
            or current.target != proposal.target
            or current.amount != proposal.amount
            or current.payload != proposal.payload
            or current.created_utc != proposal.created_utc
        ):
            raise ValueError(
                f"Immutable fields of proposal {proposal.proposal_id} cannot change"
            )
        index = proposal.proposal_id
        self._proposals[index] = proposal
        self._journal.record(lambda: self._proposals.__setitem__(index, current))
        return proposal

    def restore(self, proposal: Proposal) -> None:
        """Append a previously recorded proposal during replay."""
        if proposal.proposal_id != len(self._proposals):
            raise ValueError(
                f"Out-of-sequence proposal on restore: expected id "
                f"{len(self._proposals)}, got {proposal.proposal_id}"
            )
        self._append(proposal)

    def _append(self, proposal: Proposal) -> None:
        self._proposals.append(proposal)
        self._journal.record(self._proposals.pop)
