"""Tests for the proposal store — proves the ledger is sequential and append-only."""

import pytest
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal

from multisig.engine.proposal_store import ProposalStore
from multisig.errors import InvalidProposal, NotFound, Unauthorized
from multisig.governance.registry import ApproverRegistry
from multisig.models.proposal import ProposalState


def _now() -> datetime:
    return datetime(2026, 2, 16, 12, 0, 0, tzinfo=timezone.utc)


def _store() -> ProposalStore:
    return ProposalStore(ApproverRegistry(["alice", "bob", "carol"], threshold=2))


class TestSubmit:
    def test_first_proposal_is_zero(self) -> None:
        store = _store()
        proposal = store.submit("alice", "0xTarget", 5, b"", now=_now())
        assert proposal.proposal_id == 0
        assert proposal.submitter_id == "alice"
        assert proposal.target == "0xTarget"
        assert proposal.amount == Decimal("5")
        assert proposal.payload == b""
        assert proposal.executed is False
        assert proposal.confirmation_count == 0
        assert proposal.created_utc == _now()

    def test_ids_are_sequential(self) -> None:
        store = _store()
        ids = [store.submit("bob", "t", i, b"").proposal_id for i in range(4)]
        assert ids == [0, 1, 2, 3]
        assert store.count == 4

    def test_non_approver_rejected(self) -> None:
        store = _store()
        with pytest.raises(Unauthorized):
            store.submit("dave", "t", 1, b"")
        assert store.count == 0

    def test_amount_coercion(self) -> None:
        store = _store()
        assert store.submit("alice", "t", "1.50", b"").amount == Decimal("1.50")
        assert store.submit("alice", "t", Decimal("0"), b"").amount == Decimal("0")

    @pytest.mark.parametrize("amount", [-1, "-0.01", 1.5, True, "abc", "NaN", "Infinity", None])
    def test_bad_amount_rejected(self, amount) -> None:
        store = _store()
        with pytest.raises(InvalidProposal):
            store.submit("alice", "t", amount, b"")
        assert store.count == 0

    @pytest.mark.parametrize("target", ["", "   ", None, 7])
    def test_bad_target_rejected(self, target) -> None:
        store = _store()
        with pytest.raises(InvalidProposal, match="Target"):
            store.submit("alice", target, 1, b"")

    def test_payload_forms(self) -> None:
        store = _store()
        assert store.submit("alice", "t", 0, None).payload == b""
        assert store.submit("alice", "t", 0, bytearray(b"\x01\x02")).payload == b"\x01\x02"
        with pytest.raises(InvalidProposal, match="Payload"):
            store.submit("alice", "t", 0, "deadbeef")

    def test_authorization_checked_before_fields(self) -> None:
        store = _store()
        with pytest.raises(Unauthorized):
            store.submit("dave", "", -1, "x")


class TestLookup:
    def test_get_returns_snapshot(self) -> None:
        store = _store()
        store.submit("alice", "t", 5, b"\xff")
        snapshot = store.get(0)
        store.update(snapshot.with_count(1))
        assert snapshot.confirmation_count == 0
        assert store.get(0).confirmation_count == 1

    @pytest.mark.parametrize("bad_id", [-1, 1, 99, "0", None, True, 0.0])
    def test_not_found(self, bad_id) -> None:
        store = _store()
        store.submit("alice", "t", 5, b"")
        with pytest.raises(NotFound):
            store.get(bad_id)

    def test_not_found_is_lookup_error(self) -> None:
        with pytest.raises(LookupError):
            _store().get(0)

    def test_list_filtered_by_execution(self) -> None:
        store = _store()
        store.submit("alice", "t", 1, b"")
        store.submit("alice", "t", 2, b"")
        store.update(store.get(1).as_executed("bob", _now()))
        assert [p.proposal_id for p in store.proposals()] == [0, 1]
        assert [p.proposal_id for p in store.proposals(executed=True)] == [1]
        assert [p.proposal_id for p in store.proposals(executed=False)] == [0]


class TestUpdate:
    def test_immutable_fields_cannot_change(self) -> None:
        store = _store()
        proposal = store.submit("alice", "t", 5, b"")
        with pytest.raises(ValueError, match="Immutable"):
            store.update(replace(proposal, amount=Decimal("500")))
        with pytest.raises(ValueError, match="Immutable"):
            store.update(replace(proposal, target="elsewhere"))
        assert store.get(0).amount == Decimal("5")

    def test_update_unknown_proposal(self) -> None:
        store = _store()
        proposal = store.submit("alice", "t", 5, b"")
        with pytest.raises(NotFound):
            store.update(replace(proposal, proposal_id=3))

    def test_restore_requires_sequence(self) -> None:
        store = _store()
        proposal = _store().submit("alice", "t", 5, b"")
        with pytest.raises(ValueError, match="Out-of-sequence"):
            store.restore(replace(proposal, proposal_id=1))
        store.restore(proposal)
        assert store.get(0) == proposal


class TestDerivedState:
    def test_state_against_threshold(self) -> None:
        store = _store()
        proposal = store.submit("alice", "t", 5, b"")
        assert proposal.state(2) == ProposalState.PENDING
        assert proposal.with_count(2).state(2) == ProposalState.EXECUTABLE
        assert proposal.as_executed("bob", _now()).state(2) == ProposalState.EXECUTED

    def test_to_dict_is_json_safe(self) -> None:
        store = _store()
        proposal = store.submit("alice", "t", "1.25", b"\xab\xcd", now=_now())
        data = proposal.to_dict()
        assert data["amount"] == "1.25"
        assert data["payload"] == "abcd"
        assert data["executed_utc"] is None
