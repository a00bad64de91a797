"""
multisig: M-of-N owner-approved transaction gatekeeper.

A fixed set of owners must reach a quorum of confirmations before a proposed
action (send value and/or call a target with a payload) may execute, and an
approved action executes exactly once.

Public surface:

- OwnerRegistry(owners, m)          immutable owner set + threshold
- TransactionLedger(registry, ...)  submit / confirm / revoke / execute
- Treasury                          deposit entry point and balance
- TreasuryCallExecutor, CallResult  default external-call capability
- EventSink, Event                  notifications for every committed change
- MultisigWallet                    everything wired together
"""

from __future__ import annotations

from .calls import CallExecutor, CallResult, TreasuryCallExecutor
from .config import MultisigConfig, load_config
from .errors import (
    AlreadyConfirmed,
    AlreadyExecuted,
    ExecutionFailed,
    InsufficientBalance,
    InsufficientConfirmations,
    InvalidArgument,
    InvalidConstruction,
    MultisigError,
    NotConfirmed,
    NotOwner,
    TransactionNotFound,
    ZeroValue,
)
from .events import Event, EventSink
from .ledger import Transaction, TransactionLedger, TransactionView
from .registry import OwnerRegistry
from .treasury import Treasury
from .version import __version__
from .wallet import MultisigWallet


def version() -> str:
    """Return the multisig semantic version string."""
    return __version__


__all__ = [
    "__version__",
    "version",
    "MultisigConfig",
    "load_config",
    "OwnerRegistry",
    "Transaction",
    "TransactionView",
    "TransactionLedger",
    "Treasury",
    "CallExecutor",
    "CallResult",
    "TreasuryCallExecutor",
    "Event",
    "EventSink",
    "MultisigWallet",
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
