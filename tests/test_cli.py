"""Tests for the multisig CLI — proves commands dispatch and state persists between runs."""

import json
import logging
import pytest
import structlog
from pathlib import Path

from multisig.cli import build_parser, main


TARGET = "0x1111111111111111111111111111111111111111"


@pytest.fixture(autouse=True)
def _restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


@pytest.fixture
def dirs(tmp_path: Path) -> list[str]:
    config = tmp_path / "config"
    config.mkdir()
    (config / "wallet.json").write_text(
        json.dumps({"approvers": ["alice", "bob", "carol"], "threshold": 2}),
        encoding="utf-8",
    )
    return ["--config", str(config), "--data", str(tmp_path / "data")]


class TestCLIParsing:
    def test_status_command(self) -> None:
        args = build_parser().parse_args(["status"])
        assert args.command == "status"

    def test_submit_command(self) -> None:
        args = build_parser().parse_args([
            "submit", "--as", "alice", "--target", TARGET,
            "--amount", "1.5", "--payload", "0xbeef",
        ])
        assert args.command == "submit"
        assert args.caller == "alice"
        assert args.amount == "1.5"

    def test_execute_command(self) -> None:
        args = build_parser().parse_args(["execute", "--as", "carol", "--id", "3", "--dry-run"])
        assert args.id == 3
        assert args.dry_run

    def test_id_must_be_integer(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["confirm", "--as", "alice", "--id", "x"])


class TestCLIExecution:
    def test_no_command_shows_help(self, capsys) -> None:
        assert main([]) == 0
        assert "usage" in capsys.readouterr().out

    def test_status_on_empty_vault(self, dirs, capsys) -> None:
        assert main([*dirs, "status"]) == 0
        status = json.loads(capsys.readouterr().out)
        assert status["approvers"] == ["alice", "bob", "carol"]
        assert status["proposals"]["total"] == 0

    def test_full_lifecycle_across_invocations(self, dirs, capsys) -> None:
        assert main([*dirs, "receive", "--source", "funder", "--amount", "10"]) == 0
        assert main([*dirs, "submit", "--as", "alice", "--target", TARGET, "--amount", "4"]) == 0
        assert "Submitted proposal: 0" in capsys.readouterr().out

        assert main([*dirs, "confirm", "--as", "alice", "--id", "0"]) == 0
        assert main([*dirs, "confirm", "--as", "bob", "--id", "0"]) == 0
        assert "(2/2)" in capsys.readouterr().out

        assert main([*dirs, "execute", "--as", "carol", "--id", "0", "--dry-run"]) == 0
        assert "Executed proposal 0" in capsys.readouterr().out

        assert main([*dirs, "show", "--id", "0"]) == 0
        shown = json.loads(capsys.readouterr().out)
        assert shown["executed"]
        assert shown["state"] == "executed"
        assert shown["confirmers"] == ["alice", "bob"]

        assert main([*dirs, "status"]) == 0
        assert json.loads(capsys.readouterr().out)["balance"] == "6"

    def test_revoke(self, dirs, capsys) -> None:
        main([*dirs, "submit", "--as", "alice", "--target", TARGET])
        main([*dirs, "confirm", "--as", "bob", "--id", "0"])
        assert main([*dirs, "revoke", "--as", "bob", "--id", "0"]) == 0
        assert "(0/2)" in capsys.readouterr().out

    def test_vault_errors_reported(self, dirs, capsys) -> None:
        main([*dirs, "submit", "--as", "alice", "--target", TARGET])
        capsys.readouterr()
        assert main([*dirs, "confirm", "--as", "dave", "--id", "0"]) == 1
        assert "Failed: Unauthorized" in capsys.readouterr().err
        assert main([*dirs, "execute", "--as", "alice", "--id", "0", "--dry-run"]) == 1
        assert "Failed: InsufficientApprovals" in capsys.readouterr().err
        assert main([*dirs, "show", "--id", "7"]) == 1
        assert "Failed: NotFound" in capsys.readouterr().err

    def test_bad_payload(self, dirs, capsys) -> None:
        code = main([*dirs, "submit", "--as", "alice", "--target", TARGET, "--payload", "zz"])
        assert code == 1
        assert "payload is not hex" in capsys.readouterr().err

    def test_missing_config(self, tmp_path: Path, capsys) -> None:
        code = main(["--config", str(tmp_path / "nowhere"), "--data", str(tmp_path), "status"])
        assert code == 1
        assert "Failed: InvalidConfiguration" in capsys.readouterr().err
