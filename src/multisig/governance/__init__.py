"""Governance — approver membership and quorum threshold."""

from multisig.governance.registry import ApproverRegistry

__all__ = ["ApproverRegistry"]
