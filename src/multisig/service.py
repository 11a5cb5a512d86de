"""Multisig service — the single state object behind every vault operation.

This is the primary interface for programmatic access. It owns:
- the approver registry (membership, threshold),
- the proposal store (append-only ledger),
- the approval tracker (confirmation relation),
- the execution engine (quorum check, commit, external call),
- the journal that makes execute all-or-nothing,
- notification delivery to the event log and subscribers.

No module-level state exists; two services never share anything.

Every successful mutation publishes exactly one event. Publication is
deferred through the journal, so operations performed re-entrantly from
inside a failed external call leave no events behind.

Persistence (optional):
    service = MultisigService(registry, call, event_log=EventLog(path))
    # Existing events are replayed on construction; new ones are appended.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Optional

import structlog

from multisig.config import WalletConfig
from multisig.engine.approval_tracker import ApprovalTracker
from multisig.engine.execution import ExecutionEngine
from multisig.engine.journal import Journal
from multisig.engine.proposal_store import ProposalStore
from multisig.errors import InvalidAmount, InvalidSource, MultisigError
from multisig.governance.registry import ApproverRegistry
from multisig.models.proposal import Proposal, ProposalState, coerce_amount
from multisig.persistence.event_log import EventKind, EventLog, EventRecord
from multisig.settlement.call import CallOutcome, ExternalCall

logger = structlog.get_logger()

Subscriber = Callable[[EventRecord], None]

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def _parse_timestamp(value: str) -> datetime:
    return datetime.strptime(value, _TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


def _checked_receipt(source: object, amount: object) -> Decimal:
    if not isinstance(source, str) or not source.strip():
        raise InvalidSource("Received value must name a non-empty source")
    return coerce_amount(amount, InvalidAmount)


class MultisigService:
    """N-of-M approval vault facade.

    Usage:
        registry = ApproverRegistry(["alice", "bob", "carol"], threshold=2)
        service = MultisigService(registry, RecordingCall())

        pid = service.submit("alice", "0xabc...", Decimal("5"), b"")
        service.confirm("alice", pid)
        service.confirm("bob", pid)
        service.execute("carol", pid)
    """

    def __init__(
        self,
        registry: ApproverRegistry,
        external_call: ExternalCall,
        event_log: Optional[EventLog] = None,
    ) -> None:
        self._registry = registry
        self._journal = Journal()
        self._store = ProposalStore(registry, self._journal)
        self._tracker = ApprovalTracker(registry, self._store, self._journal)
        self._engine = ExecutionEngine(registry, self._store, external_call, self._journal)

        self._subscribers: list[Subscriber] = []
        self._total_received = Decimal("0")
        self._event_log: Optional[EventLog] = None
        self._event_counter = 0

        if event_log is not None:
            self._replay(event_log)
            self._event_counter = event_log.count
        self._event_log = event_log

    @classmethod
    def from_config(
        cls,
        config: WalletConfig,
        external_call: ExternalCall,
        event_log: Optional[EventLog] = None,
    ) -> MultisigService:
        return cls(config.build_registry(), external_call, event_log=event_log)

    @classmethod
    def from_event_log(
        cls,
        config: WalletConfig,
        event_log: EventLog,
        external_call: ExternalCall,
    ) -> MultisigService:
        """Rebuild a vault from its log. The external call is never invoked."""
        return cls.from_config(config, external_call, event_log=event_log)

    # ------------------------------------------------------------------
    # Mutating operations (approvers only)
    # ------------------------------------------------------------------

    def submit(
        self,
        caller_id: str,
        target: str,
        amount: object,
        payload: object = b"",
        now: Optional[datetime] = None,
    ) -> int:
        """Record a new proposal and return its id."""
        now = now or datetime.now(timezone.utc)
        proposal = self._store.submit(caller_id, target, amount, payload, now=now)
        logger.info(
            "proposal_submitted",
            proposal_id=proposal.proposal_id,
            approver=caller_id,
            target=proposal.target,
            amount=str(proposal.amount),
        )
        self._emit(EventKind.SUBMITTED, caller_id, {
            "proposal_id": proposal.proposal_id,
            "target": proposal.target,
            "amount": str(proposal.amount),
            "payload": proposal.payload.hex(),
        }, now)
        return proposal.proposal_id

    def confirm(
        self,
        caller_id: str,
        proposal_id: int,
        now: Optional[datetime] = None,
    ) -> None:
        proposal = self._tracker.confirm(caller_id, proposal_id)
        logger.info(
            "proposal_confirmed",
            proposal_id=proposal_id,
            approver=caller_id,
            confirmation_count=proposal.confirmation_count,
        )
        self._emit(EventKind.CONFIRMED, caller_id, {"proposal_id": proposal_id}, now)

    def revoke(
        self,
        caller_id: str,
        proposal_id: int,
        now: Optional[datetime] = None,
    ) -> None:
        proposal = self._tracker.revoke(caller_id, proposal_id)
        logger.info(
            "confirmation_revoked",
            proposal_id=proposal_id,
            approver=caller_id,
            confirmation_count=proposal.confirmation_count,
        )
        self._emit(EventKind.REVOKED, caller_id, {"proposal_id": proposal_id}, now)

    def execute(
        self,
        caller_id: str,
        proposal_id: int,
        now: Optional[datetime] = None,
    ) -> CallOutcome:
        """Execute a quorum-approved proposal exactly once.

        Returns the external call's outcome. On ExternalCallFailed the
        proposal is left exactly as it was before the call.
        """
        now = now or datetime.now(timezone.utc)
        proposal, outcome = self._engine.execute(caller_id, proposal_id, now=now)
        logger.info(
            "proposal_executed",
            proposal_id=proposal_id,
            approver=caller_id,
            target=proposal.target,
            amount=str(proposal.amount),
            reference=outcome.reference,
        )
        self._emit(EventKind.EXECUTED, caller_id, {"proposal_id": proposal_id}, now)
        return outcome

    # ------------------------------------------------------------------
    # Incoming value (no proposal involved)
    # ------------------------------------------------------------------

    def receive(
        self,
        source: str,
        amount: object,
        now: Optional[datetime] = None,
    ) -> None:
        """Record value sent to the vault from outside."""
        value = _checked_receipt(source, amount)
        self._total_received += value
        self._journal.record(lambda: self._credit(-value))
        logger.info("value_received", source=source, amount=str(value))
        self._emit(EventKind.RECEIVED, source, {"amount": str(value)}, now)

    # ------------------------------------------------------------------
    # Queries (no authorization)
    # ------------------------------------------------------------------

    def get_approvers(self) -> list[str]:
        return self._registry.approvers

    def get_threshold(self) -> int:
        return self._registry.threshold

    def get_proposal(self, proposal_id: int) -> Proposal:
        return self._store.get(proposal_id)

    def get_proposal_count(self) -> int:
        return self._store.count

    def get_confirmation_count(self, proposal_id: int) -> int:
        return self._store.get(proposal_id).confirmation_count

    def is_confirmed(self, proposal_id: int, approver_id: str) -> bool:
        self._store.get(proposal_id)
        return self._tracker.is_confirmed(proposal_id, approver_id)

    def get_confirmers(self, proposal_id: int) -> list[str]:
        self._store.get(proposal_id)
        return self._tracker.confirmers(proposal_id)

    def state_of(self, proposal_id: int) -> ProposalState:
        return self._engine.state_of(proposal_id)

    def list_proposals(self, executed: Optional[bool] = None) -> list[Proposal]:
        return self._store.proposals(executed=executed)

    @property
    def balance(self) -> Decimal:
        """Value received minus value sent by executed proposals."""
        spent = sum(
            (p.amount for p in self._store.proposals(executed=True)),
            Decimal("0"),
        )
        return self._total_received - spent

    def status(self) -> dict[str, Any]:
        proposals = self._store.proposals()
        return {
            "approvers": self._registry.approvers,
            "threshold": self._registry.threshold,
            "proposals": {
                "total": len(proposals),
                "pending": sum(
                    1 for p in proposals
                    if p.state(self._registry.threshold) == ProposalState.PENDING
                ),
                "executable": sum(
                    1 for p in proposals
                    if p.state(self._registry.threshold) == ProposalState.EXECUTABLE
                ),
                "executed": sum(1 for p in proposals if p.executed),
            },
            "balance": str(self.balance),
            "events": self._event_log.count if self._event_log is not None else None,
        }

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register a callable for every published event.

        Returns a function that removes the subscription.
        """
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _credit(self, value: Decimal) -> None:
        self._total_received += value

    def _emit(
        self,
        kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        now: Optional[datetime],
    ) -> None:
        timestamp = now or datetime.now(timezone.utc)
        self._journal.defer(lambda: self._publish(kind, actor_id, payload, timestamp))

    def _publish(
        self,
        kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        timestamp: datetime,
    ) -> None:
        self._event_counter += 1
        event = EventRecord.create(
            event_id=f"evt_{self._event_counter:08d}",
            event_kind=kind,
            actor_id=actor_id,
            payload=payload,
            timestamp_utc=timestamp,
        )
        if self._event_log is not None:
            self._event_log.append(event)
        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception:
                # State is already committed; a broken observer must not
                # make the operation look failed.
                logger.exception(
                    "subscriber_failed",
                    event_id=event.event_id,
                    event_kind=kind.value,
                )

    def _replay(self, event_log: EventLog) -> None:
        """Rebuild state from a log without calling out or re-publishing."""
        for event in event_log.events():
            try:
                self._apply(event)
            except (MultisigError, KeyError, ValueError) as exc:
                raise ValueError(
                    f"Cannot replay event {event.event_id} "
                    f"({event.event_kind.value}): {exc}"
                ) from exc
        logger.info(
            "event_log_replayed",
            events=event_log.count,
            proposals=self._store.count,
        )

    def _apply(self, event: EventRecord) -> None:
        payload = event.payload
        when = _parse_timestamp(event.timestamp_utc)
        if event.event_kind == EventKind.SUBMITTED:
            self._registry.slot_of(event.actor_id)
            self._store.restore(Proposal(
                proposal_id=payload["proposal_id"],
                submitter_id=event.actor_id,
                target=payload["target"],
                amount=Decimal(payload["amount"]),
                payload=bytes.fromhex(payload["payload"]),
                created_utc=when,
            ))
        elif event.event_kind == EventKind.CONFIRMED:
            self._tracker.confirm(event.actor_id, payload["proposal_id"])
        elif event.event_kind == EventKind.REVOKED:
            self._tracker.revoke(event.actor_id, payload["proposal_id"])
        elif event.event_kind == EventKind.EXECUTED:
            self._engine.restore_executed(payload["proposal_id"], event.actor_id, when)
        elif event.event_kind == EventKind.RECEIVED:
            self._total_received += _checked_receipt(event.actor_id, payload["amount"])
