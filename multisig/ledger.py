"""
multisig.ledger: transaction lifecycle: submit → confirm/revoke → execute.

Lifecycle of one transaction (identified by its zero-based index):

    submit   (owner)  -> appended, executed=False, submitter counted as the
                         first confirmation
    confirm  (owner)  -> owner added to confirmed_by (at most once)
    revoke   (owner)  -> owner's own confirmation removed
    execute  (owner)  -> once len(confirmed_by) >= M: executed=True, then the
                         injected call executor runs (to, value, data)

Guarantees
----------
* Every public operation holds the ledger lock for its whole duration and
  checks all preconditions before writing, so a failed call changes nothing.
* ``executed`` is set before the external call, and a re-entrant execute
  issued from inside the call sees it already set, so at most one execution
  per index ever succeeds.
* A failed call rolls back everything it did to the ledger through
  ``checkpoint()`` and discards the events it produced.
* Indices are dense and never reused; transactions are never deleted.
* Events reach the sink before the lock is released, so the event log is
  in commit order. Subscribers run after the lock is released.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, NamedTuple, Optional, Set, Tuple

from .address import AddressLike, to_address, to_bytes, to_hex
from .calls import CallExecutor, CallResult
from .config import MultisigConfig, load_config
from .errors import (
    AlreadyConfirmed,
    AlreadyExecuted,
    ExecutionFailed,
    InsufficientConfirmations,
    InvalidArgument,
    NotConfirmed,
    TransactionNotFound,
)
from .events import (
    CONFIRM_TRANSACTION,
    EXECUTE_TRANSACTION,
    REVOKE_CONFIRMATION,
    SUBMIT_TRANSACTION,
    EventSink,
)
from .registry import OwnerRegistry

log = logging.getLogger(__name__)


class TransactionView(NamedTuple):
    """Read-only snapshot returned by :meth:`TransactionLedger.transaction`."""

    to: bytes
    value: int
    data: bytes
    executed: bool
    num_confirmations: int


@dataclass
class Transaction:
    index: int
    to: bytes
    value: int
    data: bytes
    submitter: bytes
    executed: bool = False
    confirmed_by: Set[bytes] = field(default_factory=set)

    @property
    def num_confirmations(self) -> int:
        return len(self.confirmed_by)

    def view(self) -> TransactionView:
        return TransactionView(self.to, self.value, self.data, self.executed, self.num_confirmations)


def _no_executor(to: bytes, value: int, data: bytes) -> CallResult:
    return CallResult(success=False, error="no call executor configured")


class TransactionLedger:
    def __init__(
        self,
        registry: OwnerRegistry,
        executor: Optional[CallExecutor] = None,
        *,
        sink: Optional[EventSink] = None,
        config: Optional[MultisigConfig] = None,
    ) -> None:
        self.registry = registry
        self.executor: CallExecutor = executor or _no_executor
        self.sink = sink if sink is not None else EventSink()
        self.config = config or load_config()
        self._txs: List[Transaction] = []
        self._lock = threading.RLock()

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _get(self, index: Any) -> Transaction:
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(self._txs):
            raise TransactionNotFound(index)
        return self._txs[index]

    def _check_votable(self, tx: Transaction) -> None:
        if tx.executed and not self.config.allow_post_execution_votes:
            raise AlreadyExecuted(tx.index)

    def _check_call_args(self, to: AddressLike, value: Any, data: Any) -> Tuple[bytes, int, bytes]:
        target = to_address(to, self.config.address_len)
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise InvalidArgument("value must be a non-negative int", details={"value": str(value)})
        if value.bit_length() > self.config.max_balance_bits:
            raise InvalidArgument(f"value exceeds {self.config.max_balance_bits}-bit limit")
        payload = to_bytes(data if data is not None else b"")
        if len(payload) > self.config.max_payload_bytes:
            raise InvalidArgument(
                "payload too large",
                details={"len": len(payload), "max": self.config.max_payload_bytes},
            )
        return target, value, payload

    # ------------------------------------------------------------------ #
    # Mutating operations
    # ------------------------------------------------------------------ #

    def submit(self, caller: AddressLike, to: AddressLike, value: int, data: Any = b"") -> int:
        """
        Propose (to, value, data); returns the new transaction index.

        The submitter's confirmation is recorded immediately, so a fresh
        transaction starts with one confirmation.
        """
        with self.sink.atomic(self._lock):
            owner = self.registry.require_owner(caller)
            target, amount, payload = self._check_call_args(to, value, data)
            index = len(self._txs)
            tx = Transaction(index=index, to=target, value=amount, data=payload, submitter=owner)
            tx.confirmed_by.add(owner)
            self._txs.append(tx)
            log.info("tx %d submitted by %s: to=%s value=%d data=%d bytes", index, to_hex(owner), to_hex(target), amount, len(payload))
            self.sink.emit(
                SUBMIT_TRANSACTION,
                {"owner": owner, "tx_index": index, "to": target, "value": amount, "data": payload},
            )
        return index

    def confirm(self, caller: AddressLike, index: int) -> int:
        """Add the caller's confirmation; returns the new confirmation count."""
        with self.sink.atomic(self._lock):
            owner = self.registry.require_owner(caller)
            tx = self._get(index)
            self._check_votable(tx)
            if owner in tx.confirmed_by:
                raise AlreadyConfirmed(index, details={"owner": owner})
            tx.confirmed_by.add(owner)
            count = tx.num_confirmations
            log.debug("tx %d confirmed by %s (%d/%d)", index, to_hex(owner), count, self.registry.num_confirmations_required())
            self.sink.emit(CONFIRM_TRANSACTION, {"owner": owner, "tx_index": index})
        return count

    def revoke(self, caller: AddressLike, index: int) -> int:
        """Withdraw the caller's own confirmation; returns the new count."""
        with self.sink.atomic(self._lock):
            owner = self.registry.require_owner(caller)
            tx = self._get(index)
            self._check_votable(tx)
            if owner not in tx.confirmed_by:
                raise NotConfirmed(index, details={"owner": owner})
            tx.confirmed_by.discard(owner)
            count = tx.num_confirmations
            log.debug("tx %d revoked by %s (%d/%d)", index, to_hex(owner), count, self.registry.num_confirmations_required())
            self.sink.emit(REVOKE_CONFIRMATION, {"owner": owner, "tx_index": index})
        return count

    def execute(self, caller: AddressLike, index: int) -> CallResult:
        """
        Run the transaction's call once quorum is reached.

        Raises ExecutionFailed when the call executor raises or reports
        failure. Everything the call did to this ledger in the meantime
        (new submissions, votes, nested executions) is rolled back together
        with ``executed``, and the events it produced are discarded.
        """
        with self.sink.atomic(self._lock):
            owner = self.registry.require_owner(caller)
            tx = self._get(index)
            if tx.executed:
                raise AlreadyExecuted(index)
            need = self.registry.num_confirmations_required()
            if tx.num_confirmations < need:
                raise InsufficientConfirmations(index, have=tx.num_confirmations, need=need)

            with self.checkpoint(), self.sink.checkpoint():
                tx.executed = True
                result = self._call(owner, tx)
            log.info("tx %d executed by %s", index, to_hex(owner))
            self.sink.emit(EXECUTE_TRANSACTION, {"owner": owner, "tx_index": index})
        return result

    def _call(self, owner: bytes, tx: Transaction) -> CallResult:
        try:
            result = self.executor(tx.to, tx.value, tx.data)
        except Exception as e:
            log.warning("tx %d execution by %s raised", tx.index, to_hex(owner), exc_info=True)
            raise ExecutionFailed(tx.index, details={"error": f"{type(e).__name__}: {e}"}) from e
        if not result.success:
            log.warning("tx %d execution by %s failed: %s", tx.index, to_hex(owner), result.error)
            raise ExecutionFailed(tx.index, details={"error": result.error or ""})
        return result

    @contextmanager
    def checkpoint(self) -> Iterator["TransactionLedger"]:
        """Restore the transaction list, votes and executed flags if the body raises."""
        with self._lock:
            count = len(self._txs)
            saved = [(tx.executed, set(tx.confirmed_by)) for tx in self._txs]
            try:
                yield self
            except BaseException:
                del self._txs[count:]
                for tx, (executed, votes) in zip(self._txs, saved):
                    tx.executed = executed
                    tx.confirmed_by = votes
                raise

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def transaction(self, index: int) -> TransactionView:
        with self._lock:
            return self._get(index).view()

    def is_confirmed(self, index: int, address: AddressLike) -> bool:
        with self._lock:
            tx = self._get(index)
            try:
                addr = to_address(address, self.config.address_len)
            except InvalidArgument:
                return False
            return addr in tx.confirmed_by

    def confirmations(self, index: int) -> Tuple[bytes, ...]:
        """Owners currently confirming `index`, in registry order."""
        with self._lock:
            tx = self._get(index)
            return tuple(o for o in self.registry.owners() if o in tx.confirmed_by)

    def transaction_count(self) -> int:
        with self._lock:
            return len(self._txs)

    def pending(self) -> List[int]:
        with self._lock:
            return [tx.index for tx in self._txs if not tx.executed]

    def __len__(self) -> int:
        return self.transaction_count()

    # ------------------------------------------------------------------ #
    # Persistence
    # ------------------------------------------------------------------ #

    def snapshot(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [
                {
                    "to": to_hex(tx.to),
                    "value": tx.value,
                    "data": to_hex(tx.data),
                    "submitter": to_hex(tx.submitter),
                    "executed": tx.executed,
                    "confirmed_by": [to_hex(o) for o in self.registry.owners() if o in tx.confirmed_by],
                }
                for tx in self._txs
            ]

    @classmethod
    def restore(
        cls,
        registry: OwnerRegistry,
        records: List[Dict[str, Any]],
        executor: Optional[CallExecutor] = None,
        *,
        sink: Optional[EventSink] = None,
        config: Optional[MultisigConfig] = None,
    ) -> "TransactionLedger":
        """Rebuild a ledger from :meth:`snapshot` output, re-checking invariants."""
        ledger = cls(registry, executor, sink=sink, config=config)
        for i, rec in enumerate(records):
            target, amount, payload = ledger._check_call_args(rec["to"], int(rec["value"]), rec.get("data") or b"")
            tx = Transaction(
                index=i,
                to=target,
                value=amount,
                data=payload,
                submitter=registry.require_owner(rec["submitter"]),
                executed=bool(rec.get("executed", False)),
            )
            for o in rec.get("confirmed_by") or []:
                tx.confirmed_by.add(registry.require_owner(o))
            ledger._txs.append(tx)
        return ledger


__all__ = ["Transaction", "TransactionView", "TransactionLedger"]
