"""Settlement — pluggable capabilities that perform executed proposals."""

from multisig.settlement.call import CallOutcome, ExternalCall, RecordingCall, Web3Call

__all__ = [
    "CallOutcome",
    "ExternalCall",
    "RecordingCall",
    "Web3Call",
]
