"""Failure kinds raised by the approval and execution core.

Every failure is synchronous and leaves state untouched. None is retried
or downgraded to a no-op: the caller always learns which precondition
was violated.
"""

from __future__ import annotations


class MultisigError(Exception):
    """Base class for all multisig failures."""


class InvalidConfiguration(MultisigError, ValueError):
    """Approver set or threshold rejected at construction."""


class InvalidProposal(MultisigError, ValueError):
    """Proposal fields (target, amount, payload) are malformed."""


class InvalidAmount(MultisigError, ValueError):
    """An incoming value is negative or not a finite number."""


class InvalidSource(MultisigError, ValueError):
    """Incoming value does not name who sent it."""


class Unauthorized(MultisigError, PermissionError):
    """Caller is not a member of the approver set."""


class NotFound(MultisigError, LookupError):
    """No proposal exists with the given identifier."""


class AlreadyExecuted(MultisigError):
    """The proposal has already been executed."""


class AlreadyConfirmed(MultisigError):
    """The caller has already confirmed this proposal."""


class NotConfirmed(MultisigError):
    """The caller has no confirmation on this proposal to revoke."""


class InsufficientApprovals(MultisigError):
    """Confirmation count is below the quorum threshold."""


class ExternalCallFailed(MultisigError):
    """The external call reported failure; the execution was rolled back."""
