"""
multisig.calls: the external-call capability used by execution.

The ledger never performs a transfer or call itself. It invokes an injected
``CallExecutor`` with (to, value, data) and observes the ``CallResult``.

``TreasuryCallExecutor`` is the default, in-process executor:
  * moves ``value`` out of the wallet treasury to ``to``;
  * if ``data`` is non-empty and a handler is registered for ``to``, calls
    ``handler(to, value, data)`` and returns its bytes as return data;
  * any failure (insufficient balance, handler exception) restores the
    treasury, drops the events the handler produced, and is reported as
    ``CallResult(success=False)``.

Targets without a handler behave like plain accounts: the value moves and
the payload is ignored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol

from .address import AddressLike, to_address, to_hex
from .errors import MultisigError
from .treasury import Treasury

log = logging.getLogger(__name__)

CallHandler = Callable[[bytes, int, bytes], Optional[bytes]]


@dataclass(frozen=True)
class CallResult:
    success: bool
    ret: bytes = b""
    error: Optional[str] = None


class CallExecutor(Protocol):
    def __call__(self, to: bytes, value: int, data: bytes) -> CallResult:
        ...


class TreasuryCallExecutor:
    def __init__(
        self,
        treasury: Treasury,
        handlers: Optional[Dict[AddressLike, CallHandler]] = None,
    ) -> None:
        self.treasury = treasury
        self._handlers: Dict[bytes, CallHandler] = {}
        for addr, fn in (handlers or {}).items():
            self.register(addr, fn)

    def register(self, target: AddressLike, handler: CallHandler) -> None:
        self._handlers[to_address(target, self.treasury.config.address_len)] = handler

    def unregister(self, target: AddressLike) -> None:
        self._handlers.pop(to_address(target, self.treasury.config.address_len), None)

    def __call__(self, to: bytes, value: int, data: bytes) -> CallResult:
        handler = self._handlers.get(to) if data else None
        try:
            with self.treasury.checkpoint(), self.treasury.sink.checkpoint():
                self.treasury.transfer(to, value)
                ret = handler(to, value, data) if handler is not None else b""
        except MultisigError as e:
            log.warning("call to %s failed: %s", to_hex(to), e)
            return CallResult(success=False, error=str(e))
        except Exception as e:
            log.warning("call handler for %s raised", to_hex(to), exc_info=True)
            return CallResult(success=False, error=f"{type(e).__name__}: {e}")
        return CallResult(success=True, ret=bytes(ret or b""))


__all__ = ["CallResult", "CallExecutor", "CallHandler", "TreasuryCallExecutor"]
