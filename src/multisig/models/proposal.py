"""Proposal model — a recorded intent to call a target with value and payload.

All monetary values use Decimal for exact arithmetic. No floats in finance.

Proposals are frozen. The store replaces a proposal with an updated copy
on each transition, so any proposal handed to a caller is a snapshot that
later transitions cannot alter.

State machine:
    PENDING → EXECUTABLE    (confirmation_count reaches threshold)
    EXECUTABLE → PENDING    (a revocation drops the count below threshold)
    EXECUTABLE → EXECUTED   (execute succeeds; terminal)
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional, Type


class ProposalState(str, enum.Enum):
    """Lifecycle state of a proposal, derived from its fields."""
    PENDING = "pending"
    EXECUTABLE = "executable"
    EXECUTED = "executed"


@dataclass(frozen=True)
class Proposal:
    """A single entry in the proposal ledger.

    proposal_id, submitter_id, target, amount, payload and created_utc are
    fixed at submission. executed, confirmation_count, executed_by and
    executed_utc change only through confirm, revoke and execute.
    """
    proposal_id: int
    submitter_id: str
    target: str
    amount: Decimal
    payload: bytes
    created_utc: datetime
    executed: bool = False
    confirmation_count: int = 0
    executed_by: Optional[str] = None
    executed_utc: Optional[datetime] = None

    def state(self, threshold: int) -> ProposalState:
        """Derive the lifecycle state against a quorum threshold."""
        if self.executed:
            return ProposalState.EXECUTED
        if self.confirmation_count >= threshold:
            return ProposalState.EXECUTABLE
        return ProposalState.PENDING

    def with_count(self, confirmation_count: int) -> Proposal:
        return replace(self, confirmation_count=confirmation_count)

    def as_executed(self, executed_by: str, now: datetime) -> Proposal:
        return replace(self, executed=True, executed_by=executed_by, executed_utc=now)

    def to_dict(self) -> dict:
        """JSON-safe view (amount as string, payload as hex)."""
        return {
            "proposal_id": self.proposal_id,
            "submitter_id": self.submitter_id,
            "target": self.target,
            "amount": str(self.amount),
            "payload": self.payload.hex(),
            "created_utc": self.created_utc.isoformat(),
            "executed": self.executed,
            "confirmation_count": self.confirmation_count,
            "executed_by": self.executed_by,
            "executed_utc": self.executed_utc.isoformat() if self.executed_utc else None,
        }


def coerce_amount(value: object, error: Type[Exception] = ValueError) -> Decimal:
    """Convert an int, str or Decimal into a non-negative finite Decimal.

    Floats and booleans are refused outright rather than rounded.
    """
    if isinstance(value, (bool, float)):
        raise error(f"Amount must be an int, str or Decimal, got {type(value).__name__}")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, str)):
        try:
            amount = Decimal(value)
        except InvalidOperation:
            raise error(f"Amount is not a number: {value!r}") from None
    else:
        raise error(f"Amount must be an int, str or Decimal, got {type(value).__name__}")
    if not amount.is_finite():
        raise error(f"Amount must be finite, got {amount}")
    if amount < 0:
        raise error(f"Amount must be non-negative, got {amount}")
    return amount
