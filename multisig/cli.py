"""
multisig CLI: drive a wallet whose state lives in a JSON file.

Examples:
  multisig --state ./w.json init --owner 0x11.. --owner 0x22.. --owner 0x33.. --threshold 2
  multisig --state ./w.json deposit --amount 1000000000000000000
  multisig --state ./w.json submit --caller 0x11.. --to 0x44.. --value 5 --data 0x
  multisig --state ./w.json confirm --caller 0x22.. --index 0
  multisig --state ./w.json execute --caller 0x22.. --index 0
  multisig --state ./w.json show --index 0
  multisig --state ./w.json events

The state file defaults to $MULTISIG_STATE_FILE or ./multisig_state.json.
Failures print "CODE: message" on stderr and exit with status 1.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, NoReturn, Optional

import typer

from .address import to_hex
from .config import load_config
from .errors import InvalidArgument, MultisigError
from .version import __version__
from .wallet import MultisigWallet

log = logging.getLogger(__name__)

app = typer.Typer(
    help="M-of-N multisig wallet: submit, confirm, revoke and execute transactions.",
    add_completion=False,
)

_CTX: Dict[str, Any] = {}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _state_path() -> Path:
    return Path(_CTX.get("state") or load_config().state_file)


def _fail(err: MultisigError) -> NoReturn:
    typer.echo(str(err), err=True)
    raise typer.Exit(code=1)


def _load_state(path: Path) -> Dict[str, Any]:
    if not path.exists():
        typer.echo(f"No wallet state at {path}; run 'init' first", err=True)
        raise typer.Exit(code=1)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        _fail(InvalidArgument(f"unreadable wallet state at {path}", details={"error": str(e)}))
    if not isinstance(data, dict) or "wallet" not in data:
        _fail(InvalidArgument(f"malformed wallet state at {path}"))
    return data


def _open(store: Dict[str, Any]) -> MultisigWallet:
    try:
        return MultisigWallet.from_dict(store["wallet"])
    except MultisigError as e:
        _fail(e)
    except (KeyError, TypeError, ValueError) as e:
        _fail(InvalidArgument("malformed wallet state", details={"error": f"{type(e).__name__}: {e}"}))


def _save_state(path: Path, wallet: MultisigWallet, events: List[Dict[str, Any]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    store = {"wallet": wallet.to_dict(), "events": events}
    path.write_text(json.dumps(store, indent=2), encoding="utf-8")


def _read(op: Callable[[MultisigWallet], Any]) -> Any:
    """Load the wallet and apply a read-only `op`; the state file is left alone."""
    wallet = _open(_load_state(_state_path()))
    try:
        return op(wallet)
    except MultisigError as e:
        _fail(e)


def _run(op: Callable[[MultisigWallet], Any]) -> Any:
    """Load the wallet, apply `op`, persist state plus any new events."""
    path = _state_path()
    store = _load_state(path)
    wallet = _open(store)
    try:
        out = op(wallet)
    except MultisigError as e:
        _fail(e)
    _save_state(path, wallet, list(store.get("events") or []) + wallet.receipts())
    return out


def _echo_json(obj: Any) -> None:
    typer.echo(json.dumps(obj, indent=2))


def _tx_json(wallet: MultisigWallet, index: int) -> Dict[str, Any]:
    tx = wallet.transactions(index)
    return {
        "index": index,
        "to": to_hex(tx.to),
        "value": tx.value,
        "data": to_hex(tx.data),
        "executed": tx.executed,
        "num_confirmations": tx.num_confirmations,
        "confirmed_by": [to_hex(o) for o in wallet.ledger.confirmations(index)],
    }


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.callback()
def main(
    state: Optional[Path] = typer.Option(None, "--state", help="Wallet state JSON file."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ..."),
) -> None:
    _CTX["state"] = state
    _configure_logging(log_level or load_config().log_level)


@app.command()
def version() -> None:
    """Print the package version."""
    typer.echo(__version__)


@app.command()
def init(
    owner: List[str] = typer.Option(..., "--owner", help="Owner address (repeatable)."),
    threshold: int = typer.Option(..., "--threshold", help="Confirmations required."),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing state file."),
) -> None:
    """Create a new wallet state file."""
    path = _state_path()
    if path.exists() and not force:
        typer.echo(f"{path} already exists (use --force to overwrite)", err=True)
        raise typer.Exit(code=1)
    try:
        wallet = MultisigWallet(owner, threshold)
    except MultisigError as e:
        _fail(e)
    _save_state(path, wallet, [])
    typer.echo(f"Wallet initialized: {len(owner)} owners, {threshold} confirmations required")


@app.command()
def deposit(
    amount: int = typer.Option(..., "--amount"),
    sender: Optional[str] = typer.Option(None, "--sender"),
) -> None:
    """Fund the wallet."""
    balance = _run(lambda w: w.deposit_eth(amount, sender))
    typer.echo(f"balance: {balance}")


@app.command()
def submit(
    caller: str = typer.Option(..., "--caller"),
    to: str = typer.Option(..., "--to"),
    value: int = typer.Option(0, "--value"),
    data: str = typer.Option("0x", "--data", help="Hex call data."),
) -> None:
    """Propose a transaction (counts as the caller's confirmation)."""
    index = _run(lambda w: w.submit_transaction(caller, to, value, data))
    typer.echo(f"tx_index: {index}")


@app.command()
def confirm(caller: str = typer.Option(..., "--caller"), index: int = typer.Option(..., "--index")) -> None:
    """Confirm a transaction."""
    count = _run(lambda w: w.confirm_transaction(caller, index))
    typer.echo(f"num_confirmations: {count}")


@app.command()
def revoke(caller: str = typer.Option(..., "--caller"), index: int = typer.Option(..., "--index")) -> None:
    """Withdraw a confirmation."""
    count = _run(lambda w: w.revoke_confirmation(caller, index))
    typer.echo(f"num_confirmations: {count}")


@app.command()
def execute(caller: str = typer.Option(..., "--caller"), index: int = typer.Option(..., "--index")) -> None:
    """Execute a transaction that reached quorum."""
    result = _run(lambda w: w.execute_transaction(caller, index))
    typer.echo(f"executed: tx {index} ret={to_hex(result.ret)}")


@app.command()
def show(index: Optional[int] = typer.Option(None, "--index")) -> None:
    """Print the wallet, or a single transaction, as JSON."""

    def _view(w: MultisigWallet) -> Dict[str, Any]:
        if index is not None:
            return _tx_json(w, index)
        return {
            "owners": [to_hex(o) for o in w.get_owners()],
            "num_confirmations_required": w.num_confirmations_required(),
            "balance": w.balance(),
            "transactions": [_tx_json(w, i) for i in range(w.get_transaction_count())],
        }

    _echo_json(_read(_view))


@app.command()
def events() -> None:
    """Print every event recorded in the state file."""
    _echo_json(_load_state(_state_path()).get("events") or [])


def run() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    run()
