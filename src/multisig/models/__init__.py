"""Core data models for the multisig vault."""

from multisig.models.proposal import Proposal, ProposalState, coerce_amount

__all__ = [
    "Proposal",
    "ProposalState",
    "coerce_amount",
]
