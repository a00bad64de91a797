import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from multisig import cli
from multisig.tests import accounts
from multisig.tests.accounts import hexaddr

runner = CliRunner()

A = hexaddr(accounts.A)
B = hexaddr(accounts.B)
C = hexaddr(accounts.C)
NON_OWNER = hexaddr(accounts.NON_OWNER)
TARGET = hexaddr(accounts.TARGET)


def run_cli(args: list[str], state: Path, *, ok: bool = True):
    result = runner.invoke(cli.app, ["--state", str(state), "--log-level", "WARNING"] + args)
    if ok:
        assert result.exit_code == 0, result.output
    return result


@pytest.fixture
def state(tmp_path: Path) -> Path:
    path = tmp_path / "wallet.json"
    run_cli(["init", "--owner", A, "--owner", B, "--owner", C, "--threshold", "2"], path)
    return path


def test_init_writes_state(state: Path) -> None:
    store = json.loads(state.read_text())
    assert store["wallet"]["registry"] == {
        "owners": [A, B, C],
        "num_confirmations_required": 2,
    }
    assert store["events"] == []


def test_init_refuses_to_overwrite(state: Path) -> None:
    result = run_cli(["init", "--owner", A, "--threshold", "1"], state, ok=False)
    assert result.exit_code == 1
    run_cli(["init", "--owner", A, "--threshold", "1", "--force"], state)


def test_init_rejects_bad_threshold(tmp_path: Path) -> None:
    result = run_cli(["init", "--owner", A, "--threshold", "2"], tmp_path / "w.json", ok=False)
    assert result.exit_code == 1
    assert "INVALID_CONSTRUCTION" in result.output
    assert not (tmp_path / "w.json").exists()


def test_full_flow(state: Path) -> None:
    assert "balance: 100" in run_cli(["deposit", "--amount", "100"], state).output
    out = run_cli(["submit", "--caller", A, "--to", TARGET, "--value", "40", "--data", "0xabcd"], state).output
    assert "tx_index: 0" in out
    assert "num_confirmations: 2" in run_cli(["confirm", "--caller", B, "--index", "0"], state).output
    assert "executed: tx 0" in run_cli(["execute", "--caller", C, "--index", "0"], state).output

    shown = json.loads(run_cli(["show"], state).output)
    assert shown["balance"] == 60
    assert shown["transactions"][0]["executed"] is True
    assert shown["transactions"][0]["data"] == "0xabcd"
    assert shown["transactions"][0]["confirmed_by"] == [A, B]

    names = [e["name"] for e in json.loads(run_cli(["events"], state).output)]
    assert names == ["Deposit", "SubmitTransaction", "ConfirmTransaction", "ExecuteTransaction"]


def test_errors_exit_nonzero_and_leave_state(state: Path) -> None:
    run_cli(["submit", "--caller", A, "--to", TARGET], state)
    before = state.read_text()

    result = run_cli(["confirm", "--caller", NON_OWNER, "--index", "0"], state, ok=False)
    assert result.exit_code == 1
    assert "NOT_OWNER" in result.output

    result = run_cli(["execute", "--caller", A, "--index", "0"], state, ok=False)
    assert "INSUFFICIENT_CONFIRMATIONS" in result.output

    result = run_cli(["deposit", "--amount", "0"], state, ok=False)
    assert "ZERO_VALUE" in result.output

    assert state.read_text() == before


def test_revoke_and_show_single(state: Path) -> None:
    run_cli(["submit", "--caller", A, "--to", TARGET], state)
    assert "num_confirmations: 0" in run_cli(["revoke", "--caller", A, "--index", "0"], state).output
    tx = json.loads(run_cli(["show", "--index", "0"], state).output)
    assert tx["num_confirmations"] == 0
    assert tx["confirmed_by"] == []


def test_missing_state_file(tmp_path: Path) -> None:
    result = run_cli(["show"], tmp_path / "absent.json", ok=False)
    assert result.exit_code == 1


def test_version_command(tmp_path: Path) -> None:
    from multisig.version import __version__

    result = run_cli(["version"], tmp_path / "unused.json")
    assert result.output.strip() == __version__


def test_show_does_not_rewrite_state(state: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    run_cli(["deposit", "--amount", "5"], state)

    def no_save(*args, **kwargs):
        raise AssertionError("read-only command wrote the state file")

    monkeypatch.setattr(cli, "_save_state", no_save)
    assert json.loads(run_cli(["show"], state).output)["balance"] == 5
    result = run_cli(["show", "--index", "3"], state, ok=False)
    assert result.exit_code == 1
    assert "TX_NOT_FOUND" in result.output


@pytest.mark.parametrize(
    "content, code",
    [
        ("{not json", "INVALID_ARGUMENT"),
        ('{"events": []}', "INVALID_ARGUMENT"),
        ('{"wallet": {"version": 99}}', "INVALID_ARGUMENT"),
        ('{"wallet": {"version": 1}}', "INVALID_ARGUMENT"),
        (
            json.dumps({"wallet": {"version": 1, "registry": {"owners": [A], "num_confirmations_required": 2}}}),
            "INVALID_CONSTRUCTION",
        ),
    ],
)
def test_broken_state_file_reports_code(tmp_path: Path, content: str, code: str) -> None:
    path = tmp_path / "wallet.json"
    path.write_text(content, encoding="utf-8")
    for args in (["show"], ["deposit", "--amount", "1"]):
        result = run_cli(args, path, ok=False)
        assert result.exit_code == 1
        assert code in result.output
        assert "Traceback" not in result.output
    assert path.read_text(encoding="utf-8") == content
