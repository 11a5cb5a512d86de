"""Execution engine — quorum evaluation and the one-time commit.

Ordering inside execute is fixed: checks, then the state commit
(executed = True), then the external call. A capability that re-enters
execute, confirm or revoke for the same proposal during the call sees
executed = True and is rejected with AlreadyExecuted.

The commit and the call run inside a journal transaction. If the call
reports failure or raises, the transaction rolls back: the executed flag
and any state changed by re-entrant calls during the external call are
restored, deferred notifications are dropped, and ExternalCallFailed
reaches the caller. A failed execute is indistinguishable from one that
never happened.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import structlog

from multisig.engine.guards import (
    caller_is_approver,
    enforce,
    not_executed,
    proposal_exists,
    quorum_reached,
)
from multisig.engine.journal import Journal
from multisig.engine.proposal_store import ProposalStore
from multisig.errors import ExternalCallFailed
from multisig.governance.registry import ApproverRegistry
from multisig.models.proposal import Proposal, ProposalState
from multisig.settlement.call import CallOutcome, ExternalCall

logger = structlog.get_logger()


class ExecutionEngine:
    """Performs quorum-approved proposals exactly once.

    Usage:
        engine = ExecutionEngine(registry, store, RecordingCall(), journal)
        proposal, outcome = engine.execute("carol", 0)
    """

    def __init__(
        self,
        registry: ApproverRegistry,
        store: ProposalStore,
        external_call: ExternalCall,
        journal: Optional[Journal] = None,
    ) -> None:
        if not isinstance(external_call, ExternalCall):
            raise TypeError(
                f"external_call must implement ExternalCall, got {type(external_call)}"
            )
        self._registry = registry
        self._store = store
        self._call = external_call
        self._journal = journal or Journal()
        self._execute_guards = [
            proposal_exists(store),
            caller_is_approver(registry),
            not_executed(store),
            quorum_reached(store, registry),
        ]

    def execute(
        self,
        caller_id: str,
        proposal_id: int,
        now: Optional[datetime] = None,
    ) -> tuple[Proposal, CallOutcome]:
        """Commit and perform a quorum-approved proposal.

        Raises:
            NotFound, Unauthorized, AlreadyExecuted, InsufficientApprovals
            (checked in that order), or ExternalCallFailed after rollback.
        """
        enforce(self._execute_guards, caller_id, proposal_id)
        if now is None:
            now = datetime.now(timezone.utc)

        with self._journal.transaction():
            proposal = self._store.update(
                self._store.get(proposal_id).as_executed(caller_id, now)
            )
            outcome = self._perform(proposal)
        return proposal, outcome

    def restore_executed(
        self,
        proposal_id: int,
        executed_by: str,
        executed_utc: datetime,
    ) -> Proposal:
        """Mark a proposal executed during replay, without calling out.

        The same checks as execute apply, so a log can only restore an
        execution that would have been accepted live.
        """
        enforce(self._execute_guards, executed_by, proposal_id)
        proposal = self._store.get(proposal_id)
        return self._store.update(proposal.as_executed(executed_by, executed_utc))

    def state_of(self, proposal_id: int) -> ProposalState:
        return self._store.get(proposal_id).state(self._registry.threshold)

    def _perform(self, proposal: Proposal) -> CallOutcome:
        try:
            outcome = self._call.call(proposal.target, proposal.amount, proposal.payload)
        except Exception as exc:
            logger.warning(
                "external_call_raised",
                proposal_id=proposal.proposal_id,
                target=proposal.target,
                error=str(exc),
            )
            raise ExternalCallFailed(
                f"External call for proposal {proposal.proposal_id} raised: {exc}"
            ) from exc
        if not isinstance(outcome, CallOutcome):
            logger.warning(
                "external_call_bad_outcome",
                proposal_id=proposal.proposal_id,
                target=proposal.target,
                outcome_type=type(outcome).__name__,
            )
            raise ExternalCallFailed(
                f"External call for proposal {proposal.proposal_id} returned "
                f"{type(outcome).__name__}, not CallOutcome"
            )
        if not outcome.success:
            logger.warning(
                "external_call_failed",
                proposal_id=proposal.proposal_id,
                target=proposal.target,
                reference=outcome.reference,
            )
            raise ExternalCallFailed(
                f"External call for proposal {proposal.proposal_id} reported failure"
            )
        return outcome
