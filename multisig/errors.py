"""
multisig.errors
---------------

Exception hierarchy for the multisig wallet.

Every precondition violation in the registry, ledger and treasury surfaces as
one of these classes so callers (and tests) can tell causes apart. Each error
carries a stable upper-snake ``code`` that the CLI prints and that
``to_dict()`` exposes for structured logs.

Design goals
~~~~~~~~~~~~
- Lightweight: no non-stdlib dependencies.
- Deterministic payloads: ``details`` hold only call arguments (indices,
  hex addresses, amounts), never timestamps or object reprs.
- Stable codes: safe to match on from scripts.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


def _hex(b: Any) -> Any:
    if isinstance(b, (bytes, bytearray)):
        return "0x" + bytes(b).hex()
    return b


class MultisigError(Exception):
    """
    Base class for multisig errors.

    Attributes
    ----------
    code : str
        Stable, upper-snake ASCII identifier (e.g., 'NOT_OWNER').
    message : str
        Human-friendly explanation (single line).
    details : dict
        Structured data describing the failed call.
    """

    code: str = "MULTISIG_ERROR"
    default_message: str = "multisig error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        msg = message or self.default_message
        super().__init__(msg)
        self.message = msg
        self.details = {k: _hex(v) for k, v in (details or {}).items()}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": dict(self.details),
        }

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class InvalidConstruction(MultisigError):
    """Owner list or threshold rejected at construction time."""

    code = "INVALID_CONSTRUCTION"
    default_message = "invalid owners or threshold"


class InvalidArgument(MultisigError):
    """Malformed address, value or payload passed to an operation."""

    code = "INVALID_ARGUMENT"
    default_message = "invalid argument"


class NotOwner(MultisigError):
    code = "NOT_OWNER"
    default_message = "Not the owner"

    def __init__(self, caller: Any = None, *, message: Optional[str] = None) -> None:
        super().__init__(message, details={"caller": caller})


class _TxError(MultisigError):
    """Errors tied to a single transaction index."""

    def __init__(
        self,
        index: int,
        *,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        dd: Dict[str, Any] = {"tx_index": index}
        if details:
            dd.update(details)
        super().__init__(message, details=dd)
        self.index = index


class TransactionNotFound(_TxError):
    code = "TX_NOT_FOUND"
    default_message = "transaction does not exist"


class AlreadyConfirmed(_TxError):
    code = "ALREADY_CONFIRMED"
    default_message = "tx already confirmed"


class NotConfirmed(_TxError):
    code = "NOT_CONFIRMED"
    default_message = "tx not confirmed"


class AlreadyExecuted(_TxError):
    code = "ALREADY_EXECUTED"
    default_message = "tx already executed"


class InsufficientConfirmations(_TxError):
    code = "INSUFFICIENT_CONFIRMATIONS"
    default_message = "Can't execute tx not enough confirmations"

    def __init__(self, index: int, *, have: int, need: int) -> None:
        super().__init__(index, details={"have": have, "need": need})
        self.have = have
        self.need = need


class ExecutionFailed(_TxError):
    """The external call reported failure; the execution was rolled back."""

    code = "EXECUTION_FAILED"
    default_message = "tx failed"


class ZeroValue(MultisigError):
    code = "ZERO_VALUE"
    default_message = "Value must be greater than 0"


class InsufficientBalance(MultisigError):
    code = "INSUFFICIENT_BALANCE"
    default_message = "insufficient balance"

    def __init__(self, *, have: int, need: int) -> None:
        super().__init__(details={"have": have, "need": need})
        self.have = have
        self.need = need


__all__ = [
    "MultisigError",
    "InvalidConstruction",
    "InvalidArgument",
    "NotOwner",
    "TransactionNotFound",
    "AlreadyConfirmed",
    "NotConfirmed",
    "AlreadyExecuted",
    "InsufficientConfirmations",
    "ExecutionFailed",
    "ZeroValue",
    "InsufficientBalance",
]
