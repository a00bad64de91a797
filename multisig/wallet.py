"""
multisig.wallet: contract-shaped façade over registry, ledger and treasury.

    from multisig import MultisigWallet

    w = MultisigWallet([alice, bob, carol], 2)
    w.deposit_eth(10**18)
    i = w.submit_transaction(alice, to=dave, value=10**17)
    w.confirm_transaction(bob, i)
    w.execute_transaction(bob, i)

Each method takes the acting address explicitly as its first argument (the
"caller"); there is no ambient sender.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple

from .address import AddressLike
from .calls import CallExecutor, CallHandler, CallResult, TreasuryCallExecutor
from .config import MultisigConfig, load_config
from .events import Event, EventSink, events_for_receipt
from .ledger import TransactionLedger, TransactionView
from .registry import OwnerRegistry
from .treasury import Treasury

STATE_VERSION = 1


class MultisigWallet:
    def __init__(
        self,
        owners: Iterable[AddressLike],
        num_confirmations_required: int,
        *,
        executor: Optional[CallExecutor] = None,
        config: Optional[MultisigConfig] = None,
    ) -> None:
        cfg = config or load_config()
        registry = OwnerRegistry(owners, num_confirmations_required, config=cfg)
        self._wire(registry, Treasury(sink=EventSink(), config=cfg), executor, cfg)

    def _wire(
        self,
        registry: OwnerRegistry,
        treasury: Treasury,
        executor: Optional[CallExecutor],
        cfg: MultisigConfig,
        records: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        self.config = cfg
        self.registry = registry
        self.treasury = treasury
        self.sink = treasury.sink
        self.call_executor = TreasuryCallExecutor(treasury) if executor is None else None
        run = executor or self.call_executor
        self.ledger = TransactionLedger.restore(registry, records or [], run, sink=self.sink, config=cfg)

    # ---- owners ---- #

    def is_owner(self, address: AddressLike) -> bool:
        return self.registry.is_owner(address)

    def num_confirmations_required(self) -> int:
        return self.registry.num_confirmations_required()

    def get_owners(self) -> Tuple[bytes, ...]:
        return self.registry.owners()

    # ---- lifecycle ---- #

    def submit_transaction(self, caller: AddressLike, to: AddressLike, value: int = 0, data: Any = b"") -> int:
        return self.ledger.submit(caller, to, value, data)

    def confirm_transaction(self, caller: AddressLike, index: int) -> int:
        return self.ledger.confirm(caller, index)

    def revoke_confirmation(self, caller: AddressLike, index: int) -> int:
        return self.ledger.revoke(caller, index)

    def execute_transaction(self, caller: AddressLike, index: int) -> CallResult:
        return self.ledger.execute(caller, index)

    # ---- reads ---- #

    def transactions(self, index: int) -> TransactionView:
        return self.ledger.transaction(index)

    def is_confirmed(self, index: int, address: AddressLike) -> bool:
        return self.ledger.is_confirmed(index, address)

    def get_transaction_count(self) -> int:
        return self.ledger.transaction_count()

    # ---- funds ---- #

    def deposit_eth(self, amount: int, sender: Optional[AddressLike] = None) -> int:
        return self.treasury.deposit_eth(amount, sender)

    def balance(self) -> int:
        return self.treasury.balance()

    def register_handler(self, target: AddressLike, handler: CallHandler) -> None:
        """Attach a payload handler to `target` (default executor only)."""
        if self.call_executor is None:
            raise RuntimeError("wallet was built with a custom executor; register handlers there")
        self.call_executor.register(target, handler)

    # ---- events ---- #

    def events(self, name: Optional[bytes] = None) -> List[Event]:
        return self.sink.events(name)

    def receipts(self) -> List[Dict[str, Any]]:
        return [ev.to_dict() for ev in events_for_receipt(self.sink)]

    # ---- persistence ---- #

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": STATE_VERSION,
            "registry": self.registry.to_dict(),
            "treasury": self.treasury.to_dict(),
            "transactions": self.ledger.snapshot(),
        }

    @classmethod
    def from_dict(
        cls,
        d: Dict[str, Any],
        *,
        executor: Optional[CallExecutor] = None,
        config: Optional[MultisigConfig] = None,
    ) -> "MultisigWallet":
        if int(d.get("version", 0)) != STATE_VERSION:
            raise ValueError(f"unsupported wallet state version: {d.get('version')!r}")
        cfg = config or load_config()
        registry = OwnerRegistry.from_dict(d["registry"], config=cfg)
        treasury = Treasury.from_dict(d.get("treasury") or {}, sink=EventSink(), config=cfg)
        wallet = cls.__new__(cls)
        wallet._wire(registry, treasury, executor, cfg, d.get("transactions") or [])
        return wallet


__all__ = ["MultisigWallet", "STATE_VERSION"]
