"""Approval engine — proposal ledger, confirmations, and one-time execution."""

from multisig.engine.approval_tracker import ApprovalTracker
from multisig.engine.execution import ExecutionEngine
from multisig.engine.journal import Journal
from multisig.engine.proposal_store import ProposalStore

__all__ = ["ApprovalTracker", "ExecutionEngine", "Journal", "ProposalStore"]
