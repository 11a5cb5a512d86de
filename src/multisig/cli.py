"""Multisig CLI — command-line interface for the approval vault.

Usage:
    python -m multisig.cli status
    python -m multisig.cli submit --as alice --target 0xAbc... --amount 5 --payload ""
    python -m multisig.cli confirm --as alice --id 0
    python -m multisig.cli revoke --as alice --id 0
    python -m multisig.cli execute --as carol --id 0
    python -m multisig.cli show --id 0
    python -m multisig.cli receive --source 0xFunder... --amount 10

State lives in the event log (<data>/events.jsonl) and is replayed on
every invocation. execute sends a web3 transaction when MULTISIG_RPC_URL
and MULTISIG_PRIVATE_KEY are set (environment or .env), and otherwise
records the call locally (dry run).
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

from multisig.config import ChainSettings, WalletConfig
from multisig.errors import MultisigError
from multisig.persistence.event_log import EventLog
from multisig.service import MultisigService
from multisig.settlement.call import ExternalCall, RecordingCall, Web3Call
from multisig.telemetry.logging import setup_logging


DEFAULT_CONFIG = Path(__file__).resolve().parents[2] / "config"
DEFAULT_DATA = Path(__file__).resolve().parents[2] / "data"


def _make_call(env_file: Optional[Path], dry_run: bool) -> ExternalCall:
    if dry_run:
        return RecordingCall()
    settings = ChainSettings.from_env(env_file)
    if settings is None:
        return RecordingCall()
    return Web3Call(settings)


def _make_service(args: argparse.Namespace, dry_run: bool = True) -> MultisigService:
    """Create a MultisigService with durable persistence."""
    args.data.mkdir(parents=True, exist_ok=True)
    config = WalletConfig.from_config_dir(args.config)
    event_log = EventLog(storage_path=args.data / "events.jsonl")
    return MultisigService.from_config(
        config,
        _make_call(args.env_file, dry_run),
        event_log=event_log,
    )


def _parse_payload(text: str) -> bytes:
    text = text.strip()
    if text.lower().startswith("0x"):
        text = text[2:]
    return bytes.fromhex(text)


def cmd_status(args: argparse.Namespace) -> int:
    service = _make_service(args)
    print(json.dumps(service.status(), indent=2))
    return 0


def cmd_submit(args: argparse.Namespace) -> int:
    service = _make_service(args)
    try:
        payload = _parse_payload(args.payload)
    except ValueError:
        print(f"Failed: payload is not hex: {args.payload!r}", file=sys.stderr)
        return 1
    proposal_id = service.submit(args.caller, args.target, args.amount, payload)
    print(f"Submitted proposal: {proposal_id}")
    return 0


def cmd_confirm(args: argparse.Namespace) -> int:
    service = _make_service(args)
    service.confirm(args.caller, args.id)
    print(
        f"Confirmed proposal {args.id} "
        f"({service.get_confirmation_count(args.id)}/{service.get_threshold()})"
    )
    return 0


def cmd_revoke(args: argparse.Namespace) -> int:
    service = _make_service(args)
    service.revoke(args.caller, args.id)
    print(
        f"Revoked confirmation on proposal {args.id} "
        f"({service.get_confirmation_count(args.id)}/{service.get_threshold()})"
    )
    return 0


def cmd_execute(args: argparse.Namespace) -> int:
    service = _make_service(args, dry_run=args.dry_run)
    outcome = service.execute(args.caller, args.id)
    print(f"Executed proposal {args.id} (reference: {outcome.reference})")
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    service = _make_service(args)
    data = service.get_proposal(args.id).to_dict()
    data["state"] = service.state_of(args.id).value
    data["confirmers"] = service.get_confirmers(args.id)
    print(json.dumps(data, indent=2))
    return 0


def cmd_receive(args: argparse.Namespace) -> int:
    service = _make_service(args)
    service.receive(args.source, args.amount)
    print(f"Recorded {args.amount} from {args.source} (balance: {service.balance})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="multisig",
        description="N-of-M approval vault CLI",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help="Path to config directory containing wallet.json (default: config/)",
    )
    parser.add_argument(
        "--data",
        type=Path,
        default=DEFAULT_DATA,
        help="Path to data directory holding events.jsonl (default: data/)",
    )
    parser.add_argument("--env-file", type=Path, help="Path to .env with chain settings")
    parser.add_argument("--log-level", default="WARNING", help="Log level (default: WARNING)")
    parser.add_argument("--log-format", default="console", choices=["console", "json"])
    sub = parser.add_subparsers(dest="command")

    # status
    sub.add_parser("status", help="Show vault status")

    # submit
    p_submit = sub.add_parser("submit", help="Submit a new proposal")
    p_submit.add_argument("--as", dest="caller", required=True, help="Approver ID")
    p_submit.add_argument("--target", required=True, help="Destination identity")
    p_submit.add_argument("--amount", default="0", help="Value to send (Decimal)")
    p_submit.add_argument("--payload", default="", help="Call data as hex")

    # confirm / revoke / execute
    for name, help_text in (
        ("confirm", "Confirm a proposal"),
        ("revoke", "Revoke your confirmation"),
        ("execute", "Execute a quorum-approved proposal"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--as", dest="caller", required=True, help="Approver ID")
        p.add_argument("--id", type=int, required=True, help="Proposal ID")
        if name == "execute":
            p.add_argument(
                "--dry-run", action="store_true",
                help="Record the call locally even if a chain is configured",
            )

    # show
    p_show = sub.add_parser("show", help="Show one proposal")
    p_show.add_argument("--id", type=int, required=True, help="Proposal ID")

    # receive
    p_recv = sub.add_parser("receive", help="Record incoming value")
    p_recv.add_argument("--source", required=True, help="Sender identity")
    p_recv.add_argument("--amount", required=True, help="Value received (Decimal)")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    setup_logging(args.log_level, args.log_format)

    commands = {
        "status": cmd_status,
        "submit": cmd_submit,
        "confirm": cmd_confirm,
        "revoke": cmd_revoke,
        "execute": cmd_execute,
        "show": cmd_show,
        "receive": cmd_receive,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    try:
        return handler(args)
    except MultisigError as exc:
        print(f"Failed: {type(exc).__name__}: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
