"""Precondition guards — ordered, named, fail-fast.

Each mutating operation declares its preconditions as an ordered list of
guards. Evaluation stops at the first guard that does not hold and raises
that guard's failure type. Guards only read state, so a rejected call
leaves nothing behind.

Later guards may assume earlier ones held: `not_executed` reads the
proposal, so it must follow `proposal_exists`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Sequence, Type

from multisig.errors import (
    AlreadyConfirmed,
    AlreadyExecuted,
    InsufficientApprovals,
    MultisigError,
    NotConfirmed,
    NotFound,
    Unauthorized,
)

if TYPE_CHECKING:
    from multisig.engine.approval_tracker import ApprovalTracker
    from multisig.engine.proposal_store import ProposalStore
    from multisig.governance.registry import ApproverRegistry


Predicate = Callable[[str, int], bool]
Describe = Callable[[str, int], str]


@dataclass(frozen=True)
class Guard:
    """A single named precondition and the failure it raises."""
    name: str
    holds: Predicate
    failure: Type[MultisigError]
    describe: Describe


def enforce(guards: Sequence[Guard], caller_id: str, proposal_id: int) -> None:
    """Evaluate guards in order; raise the first failure."""
    for guard in guards:
        if not guard.holds(caller_id, proposal_id):
            raise guard.failure(guard.describe(caller_id, proposal_id))


def proposal_exists(store: ProposalStore) -> Guard:
    return Guard(
        name="proposal_exists",
        holds=lambda caller, pid: store.exists(pid),
        failure=NotFound,
        describe=lambda caller, pid: f"Proposal not found: {pid}",
    )


def caller_is_approver(registry: ApproverRegistry) -> Guard:
    return Guard(
        name="caller_is_approver",
        holds=lambda caller, pid: registry.is_approver(caller),
        failure=Unauthorized,
        describe=lambda caller, pid: f"Not an approver: {caller}",
    )


def not_executed(store: ProposalStore) -> Guard:
    return Guard(
        name="not_executed",
        holds=lambda caller, pid: not store.get(pid).executed,
        failure=AlreadyExecuted,
        describe=lambda caller, pid: f"Proposal {pid} already executed",
    )


def not_yet_confirmed(tracker: ApprovalTracker) -> Guard:
    return Guard(
        name="not_yet_confirmed",
        holds=lambda caller, pid: not tracker.is_confirmed(pid, caller),
        failure=AlreadyConfirmed,
        describe=lambda caller, pid: f"{caller} already confirmed proposal {pid}",
    )


def currently_confirmed(tracker: ApprovalTracker) -> Guard:
    return Guard(
        name="currently_confirmed",
        holds=lambda caller, pid: tracker.is_confirmed(pid, caller),
        failure=NotConfirmed,
        describe=lambda caller, pid: f"{caller} has not confirmed proposal {pid}",
    )


def quorum_reached(store: ProposalStore, registry: ApproverRegistry) -> Guard:
    return Guard(
        name="quorum_reached",
        holds=lambda caller, pid: store.get(pid).confirmation_count >= registry.threshold,
        failure=InsufficientApprovals,
        describe=lambda caller, pid: (
            f"Proposal {pid} has {store.get(pid).confirmation_count} "
            f"confirmations, needs {registry.threshold}"
        ),
    )
