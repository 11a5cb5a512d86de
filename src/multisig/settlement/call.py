"""External-call capability — the opaque effect an executed proposal performs.

The execution engine never moves value itself. It hands (target, amount,
payload) to an object satisfying the ExternalCall Protocol and treats the
result as opaque: success or failure, plus optional return data and a
reference (e.g. a transaction hash).

A capability may re-enter the vault before returning. The engine commits
the executed flag before calling out, so it never assumes a capability is
non-reentrant.

Adding a new settlement backend = implement ExternalCall. Zero changes to
the store, tracker, or engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Callable, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from multisig.config import ChainSettings


@dataclass(frozen=True)
class CallOutcome:
    """Result reported by an external call."""
    success: bool
    return_data: bytes = b""
    reference: Optional[str] = None


@runtime_checkable
class ExternalCall(Protocol):
    """Contract for anything that can perform an approved action."""

    def call(self, target: str, amount: Decimal, payload: bytes) -> CallOutcome:
        """Perform the action. Raising is treated the same as failure."""
        ...


@dataclass(frozen=True)
class RecordedCall:
    target: str
    amount: Decimal
    payload: bytes


@dataclass
class RecordingCall:
    """In-process capability that records calls instead of sending them.

    `fail` makes every call report failure. `on_call` runs during the call,
    before it returns, which is how a re-entrant target is simulated.
    """
    fail: bool = False
    on_call: Optional[Callable[[str, Decimal, bytes], None]] = None
    calls: list[RecordedCall] = field(default_factory=list)

    def call(self, target: str, amount: Decimal, payload: bytes) -> CallOutcome:
        if self.on_call is not None:
            self.on_call(target, amount, payload)
        if self.fail:
            return CallOutcome(success=False)
        self.calls.append(RecordedCall(target, amount, payload))
        return CallOutcome(success=True, reference=f"local:{len(self.calls)}")


class Web3Call:
    """Sends the action as a signed Ethereum transaction.

    to=target, value=amount (converted from `unit` to wei), data=payload.
    Waits for the receipt and reports success from its status field.
    """

    def __init__(self, settings: ChainSettings, unit: str = "ether") -> None:
        self._settings = settings
        self._unit = unit

    def call(self, target: str, amount: Decimal, payload: bytes) -> CallOutcome:
        from web3 import HTTPProvider, Web3
        from eth_account import Account

        settings = self._settings
        w3 = Web3(HTTPProvider(settings.rpc_url))
        acct = Account.from_key(settings.private_key)

        tx = {
            "to": Web3.to_checksum_address(target),
            "value": Web3.to_wei(amount, self._unit),
            "gas": settings.gas,
            "gasPrice": Web3.to_wei(settings.gas_price_gwei, "gwei"),
            "nonce": w3.eth.get_transaction_count(acct.address),
            "chainId": settings.chain_id,
            "data": payload,
        }
        signed = acct.sign_transaction(tx)
        tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
        receipt = w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=settings.receipt_timeout,
        )
        return CallOutcome(
            success=receipt.status == 1,
            reference=tx_hash.hex(),
        )
