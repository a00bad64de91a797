"""
multisig.treasury: the wallet's spendable balance and the deposit entry point.

The treasury is a small in-memory balance ledger:

- deposit_eth(amount, sender=None) -> int   # anyone may fund the wallet
- balance() -> int                          # the wallet's own balance
- balance_of(addr: bytes) -> int            # recipients credited by transfers
- transfer(to: bytes, amount: int)          # debit the wallet, credit `to`

Notes
-----
* Deposits have no owner restriction and never interact with confirmation
  bookkeeping; they only grow what execution may spend.
* ``checkpoint()`` snapshots all balances and restores them if its body
  raises, so a failed external call leaves no partial transfer behind.
* Pure arithmetic with explicit caps; amounts above ``max_balance_bits``
  are rejected.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from .address import AddressLike, to_address, to_hex
from .config import MultisigConfig, load_config
from .errors import InsufficientBalance, InvalidArgument, ZeroValue
from .events import DEPOSIT, EventSink

log = logging.getLogger(__name__)


class Treasury:
    def __init__(
        self,
        *,
        sink: Optional[EventSink] = None,
        config: Optional[MultisigConfig] = None,
    ) -> None:
        self.config = config or load_config()
        self.sink = sink if sink is not None else EventSink()
        self._lock = threading.RLock()
        self._balance = 0
        self._accounts: Dict[bytes, int] = {}

    # ------------------------------ Amounts -------------------------------- #

    def _check_amount(self, amount: Any) -> int:
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise InvalidArgument("amount must be int")
        if amount < 0:
            raise InvalidArgument("amount must be non-negative")
        if amount.bit_length() > self.config.max_balance_bits:
            raise InvalidArgument(f"amount exceeds {self.config.max_balance_bits}-bit limit")
        return amount

    def _add_checked(self, a: int, b: int) -> int:
        c = a + b
        if c > self.config.max_balance:
            raise InvalidArgument("balance overflow")
        return c

    # ----------------------------- Public API ------------------------------ #

    def deposit_eth(self, amount: int, sender: Optional[AddressLike] = None) -> int:
        """
        Credit the wallet with `amount`; returns the new balance.

        Raises ZeroValue when `amount` is not positive.
        """
        if not isinstance(amount, bool) and isinstance(amount, int) and amount <= 0:
            raise ZeroValue(details={"amount": amount})
        amt = self._check_amount(amount)
        frm = to_address(sender, self.config.address_len) if sender is not None else self.config.null_address
        with self.sink.atomic(self._lock):
            self._balance = self._add_checked(self._balance, amt)
            new_balance = self._balance
            log.info("deposit %d from %s (balance=%d)", amt, to_hex(frm), new_balance)
            self.sink.emit(DEPOSIT, {"sender": frm, "amount": amt, "balance": new_balance})
        return new_balance

    def balance(self) -> int:
        with self._lock:
            return self._balance

    def balance_of(self, addr: AddressLike) -> int:
        a = to_address(addr, self.config.address_len)
        with self._lock:
            return self._accounts.get(a, 0)

    def transfer(self, to: AddressLike, amount: int) -> None:
        """Debit the wallet and credit `to` by `amount`."""
        bto = to_address(to, self.config.address_len)
        amt = self._check_amount(amount)
        if amt == 0:
            return  # no-op
        with self._lock:
            if amt > self._balance:
                raise InsufficientBalance(have=self._balance, need=amt)
            credited = self._add_checked(self._accounts.get(bto, 0), amt)
            self._balance -= amt
            self._accounts[bto] = credited
            log.debug("transfer %d to %s", amt, to_hex(bto))

    @contextmanager
    def checkpoint(self) -> Iterator["Treasury"]:
        """Restore every balance if the body raises."""
        with self._lock:
            saved_balance = self._balance
            saved_accounts = dict(self._accounts)
            try:
                yield self
            except BaseException:
                self._balance = saved_balance
                self._accounts = saved_accounts
                raise

    # ---------------------------- Persistence ------------------------------ #

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "balance": self._balance,
                "accounts": {to_hex(a): v for a, v in sorted(self._accounts.items())},
            }

    @classmethod
    def from_dict(
        cls,
        d: Dict[str, Any],
        *,
        sink: Optional[EventSink] = None,
        config: Optional[MultisigConfig] = None,
    ) -> "Treasury":
        t = cls(sink=sink, config=config)
        t._balance = t._check_amount(int(d.get("balance", 0)))
        for addr, amount in (d.get("accounts") or {}).items():
            t._accounts[to_address(addr, t.config.address_len)] = t._check_amount(int(amount))
        return t


__all__ = ["Treasury"]
