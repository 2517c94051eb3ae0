"""Tests for the CLI using click CliRunner. No network; the transport is a fake."""

import json
import os
import stat
from pathlib import Path

import pytest
from click.testing import CliRunner

from broker.endpoints import ACCOUNTS_PATH, positions_path
from broker.transport import Failure, TokenPair
from cli.main import cli

from conftest import UNAUTHORIZED, FakeTransport, json_body, position_json, raw_config

POSITIONS = positions_path(4242)


@pytest.fixture
def fake(monkeypatch: pytest.MonkeyPatch) -> FakeTransport:
    transport = FakeTransport(tokens=TokenPair("a2", "r2"))
    monkeypatch.setattr("cli.main.DarwinexTransport", lambda: transport)
    return transport


def test_run_applies_updates(config_file: Path, fake: FakeTransport) -> None:
    fake.gets[POSITIONS] = [json_body([
        position_json("EURUSD.A", 100.0, 90.0, order_id=1),
        position_json("SYO", 200.0, 195.0, order_id=2),
    ])]
    result = CliRunner().invoke(cli, ["--config", str(config_file)])
    assert result.exit_code == 0, result.output
    assert "Trailing stop-loss order updated for EURUSD. New stop-loss value: 95.00" in result.output
    assert "Trailing stop-loss order updated for SYO. New stop-loss value: 196.00" in result.output
    assert len(fake.put_calls) == 2


def test_run_nothing_to_do(config_file: Path, fake: FakeTransport) -> None:
    fake.gets[POSITIONS] = [json_body([position_json("EURUSD", 100.0, 97.0)])]
    result = CliRunner().invoke(cli, ["-f", str(config_file)])
    assert result.exit_code == 0
    assert "No updates needed." in result.output
    assert fake.put_calls == []


def test_run_warns_when_no_stop_loss(config_file: Path, fake: FakeTransport) -> None:
    fake.gets[POSITIONS] = [json_body([position_json("EURUSD", 100.0, None)])]
    result = CliRunner().invoke(cli, ["-f", str(config_file)])
    assert result.exit_code == 0
    assert "WARNING: No stop-loss found for EURUSD" in result.output
    assert "WARNING: No stop-loss order found for any of the Darwins" in result.output


def test_debug_lists_unchanged(config_file: Path, fake: FakeTransport) -> None:
    fake.gets[POSITIONS] = [json_body([position_json("EURUSD", 100.0, 97.0)])]
    result = CliRunner().invoke(cli, ["-f", str(config_file), "-d"])
    assert result.exit_code == 0
    assert "Stop-loss checked but not modified for EURUSD" in result.output


def test_failed_update_keeps_exit_zero(config_file: Path, fake: FakeTransport) -> None:
    fake.gets[POSITIONS] = [json_body([position_json("EURUSD", 100.0, 90.0, order_id=1)])]
    fake.put_handler = lambda path, body: Failure(500, "500 Internal Server Error")
    result = CliRunner().invoke(cli, ["-f", str(config_file)])
    assert result.exit_code == 0
    assert "Could not update the trailing stop-loss order for EURUSD" in result.output
    assert "1 of 1 stop-loss updates failed." in result.output


def test_accounts_mode(config_file: Path, fake: FakeTransport) -> None:
    fake.gets[ACCOUNTS_PATH] = [json_body([{"id": 11, "name": "Main"}, {"id": 12, "name": "Alt"}])]
    result = CliRunner().invoke(cli, ["-f", str(config_file), "--accounts"])
    assert result.exit_code == 0
    assert "Account Name: Main -> Investor ID: 11" in result.output
    assert "Account Name: Alt -> Investor ID: 12" in result.output
    assert all(path == ACCOUNTS_PATH for path, _ in fake.get_calls)


def test_refresh_rewrites_config_file(config_file: Path, fake: FakeTransport) -> None:
    fake.gets[POSITIONS] = [UNAUTHORIZED, json_body([])]
    result = CliRunner().invoke(cli, ["-f", str(config_file)])
    assert result.exit_code == 0, result.output
    saved = json.loads(config_file.read_text())
    assert saved["authtoken"] == "a2"
    assert saved["refreshtoken"] == "r2"
    assert saved["darwins"] == raw_config()["darwins"]
    assert stat.S_IMODE(os.stat(config_file).st_mode) == 0o600


def test_second_401_exits_nonzero(config_file: Path, fake: FakeTransport) -> None:
    fake.gets[POSITIONS] = [UNAUTHORIZED, UNAUTHORIZED]
    result = CliRunner().invoke(cli, ["-f", str(config_file)])
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_invalid_spec_rejected_before_network(tmp_path: Path, fake: FakeTransport) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps(raw_config(darwins=[{"name": "EURUSD", "trailingSL": "abc"}])))
    result = CliRunner().invoke(cli, ["-f", str(path)])
    assert result.exit_code == 1
    assert "trailingSL must be a number or a percentage" in result.output
    assert fake.get_calls == []
    assert fake.put_calls == []


def test_missing_config_exits_nonzero(tmp_path: Path, fake: FakeTransport) -> None:
    result = CliRunner().invoke(cli, ["-f", str(tmp_path / "nope.json")])
    assert result.exit_code == 1
    assert "Config file not found" in result.output


def test_unreadable_config_exits_nonzero(tmp_path: Path, fake: FakeTransport) -> None:
    result = CliRunner().invoke(cli, ["-f", str(tmp_path)])
    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "Cannot read config file" in result.output
    assert fake.get_calls == []


def test_non_utf8_config_exits_nonzero(tmp_path: Path, fake: FakeTransport) -> None:
    path = tmp_path / "config.json"
    path.write_bytes(b'{"authtoken": "\xff\xfe"}')
    result = CliRunner().invoke(cli, ["-f", str(path)])
    assert result.exit_code == 1
    assert "Cannot read config file" in result.output


def test_config_from_env(config_file: Path, fake: FakeTransport) -> None:
    fake.gets[POSITIONS] = [json_body([])]
    result = CliRunner().invoke(cli, [], env={"TRAILSTOP_CONFIG": str(config_file)})
    assert result.exit_code == 0, result.output
