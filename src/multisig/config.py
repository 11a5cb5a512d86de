"""Configuration — wallet parameters from JSON, chain secrets from .env.

Wallet parameters (approver set and threshold) are fixed for the life of
a vault and live in config/wallet.json:

    {"approvers": ["alice", "bob", "carol"], "threshold": 2}

Chain settings are secrets and come from the environment, optionally
seeded from a .env file:

    MULTISIG_RPC_URL          Ethereum RPC endpoint (required for web3 calls)
    MULTISIG_PRIVATE_KEY      hex key that signs execution transactions
    MULTISIG_CHAIN_ID         default 11155111 (Sepolia)
    MULTISIG_GAS              gas limit, default 100000
    MULTISIG_GAS_PRICE_GWEI   default "2"
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from multisig.errors import InvalidConfiguration
from multisig.governance.registry import ApproverRegistry


WALLET_FILE = "wallet.json"


@dataclass(frozen=True)
class WalletConfig:
    """Approver set and quorum threshold for one vault."""

    approvers: tuple[str, ...]
    threshold: int

    @classmethod
    def from_file(cls, path: Path) -> WalletConfig:
        """Load from a JSON file with "approvers" and "threshold" keys."""
        try:
            params = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raise InvalidConfiguration(f"Wallet config not found: {path}") from None
        except json.JSONDecodeError as exc:
            raise InvalidConfiguration(f"Wallet config is not valid JSON: {exc}") from exc
        if not isinstance(params, dict):
            raise InvalidConfiguration("Wallet config must be a JSON object")
        approvers = params.get("approvers")
        if not isinstance(approvers, list):
            raise InvalidConfiguration("Wallet config 'approvers' must be a list")
        return cls(approvers=tuple(approvers), threshold=params.get("threshold"))

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> WalletConfig:
        return cls.from_file(config_dir / WALLET_FILE)

    def build_registry(self) -> ApproverRegistry:
        """Validate and freeze into a registry (raises InvalidConfiguration)."""
        return ApproverRegistry(self.approvers, self.threshold)

    def to_dict(self) -> dict:
        return {"approvers": list(self.approvers), "threshold": self.threshold}


@dataclass(frozen=True)
class ChainSettings:
    """Connection and signing settings for the web3 capability."""

    rpc_url: str
    private_key: str
    chain_id: int = 11155111  # Sepolia
    gas: int = 100_000
    gas_price_gwei: str = "2"
    receipt_timeout: int = 300

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> Optional[ChainSettings]:
        """Read settings from the environment after loading a .env file.

        Returns None when the RPC URL or private key is missing, which
        callers treat as "no chain configured".
        """
        if env_file is not None:
            load_dotenv(env_file)
        else:
            load_dotenv()

        rpc_url = os.getenv("MULTISIG_RPC_URL")
        private_key = os.getenv("MULTISIG_PRIVATE_KEY")
        if not rpc_url or not private_key:
            return None
        try:
            return cls(
                rpc_url=rpc_url,
                private_key=private_key,
                chain_id=int(os.getenv("MULTISIG_CHAIN_ID", "11155111")),
                gas=int(os.getenv("MULTISIG_GAS", "100000")),
                gas_price_gwei=os.getenv("MULTISIG_GAS_PRICE_GWEI", "2"),
            )
        except ValueError as exc:
            raise InvalidConfiguration(f"Invalid chain setting: {exc}") from exc
