from __future__ import annotations

import logging
import re
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence

from .errors import InvalidArgument

log = logging.getLogger(__name__)

# Names emitted by the wallet
DEPOSIT = b"Deposit"
SUBMIT_TRANSACTION = b"SubmitTransaction"
CONFIRM_TRANSACTION = b"ConfirmTransaction"
REVOKE_CONFIRMATION = b"RevokeConfirmation"
EXECUTE_TRANSACTION = b"ExecuteTransaction"

MAX_EVENT_NAME_BYTES = 64
MAX_KEY_LEN = 64
MAX_INT_BITS = 256

# Keys must be identifier-like: letters/underscore, then letters/digits/underscore.
_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

Subscriber = Callable[["Event"], None]


@dataclass(frozen=True)
class Event:
    """A committed notification: name plus validated args."""

    name: bytes
    args: Dict[str, Any]

    def __getitem__(self, key: str) -> Any:
        return self.args[key]


@dataclass(frozen=True)
class CanonicalEvent:
    """
    Canonical event representation for receipts and the CLI:

        name: event name decoded as ASCII
        args: sequence of {"k", "t", "v"} dicts
              t="b" => bytes encoded as 0x-prefixed hex
              t="i" => integer
              t="z" => boolean
    """

    name: str
    args: Sequence[Mapping[str, Any]]

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "args": [dict(a) for a in self.args]}


def _check_name(name: Any) -> bytes:
    if not isinstance(name, (bytes, bytearray)):
        raise InvalidArgument("event name must be bytes")
    b = bytes(name)
    if not b or len(b) > MAX_EVENT_NAME_BYTES:
        raise InvalidArgument("event name length out of range", details={"len": len(b)})
    return b


def _check_key(key: Any) -> str:
    if not isinstance(key, str) or not key or len(key) > MAX_KEY_LEN or not _KEY_RE.match(key):
        raise InvalidArgument("event key has invalid characters", details={"key": str(key)})
    return key


def _check_value(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, bool):
        # bool is a subclass of int, so check it before int.
        return value
    if isinstance(value, int):
        if value.bit_length() > MAX_INT_BITS:
            raise InvalidArgument("event int arg out of range", details={"bits": value.bit_length()})
        return int(value)
    raise InvalidArgument("unsupported event arg type", details={"py_type": type(value).__name__})


class EventSink:
    """
    Ordered, in-memory event log with synchronous subscribers.

    Events emitted inside ``checkpoint()`` are held back and reach the log
    only when the outermost checkpoint on the emitting thread exits cleanly.
    If the body raises they are dropped, so neither the log nor a subscriber
    ever observes a rolled-back call.

    ``atomic(lock)`` is what the wallet components use: the body runs under
    their lock inside a checkpoint, committed events are appended before the
    lock is released (log order is commit order), and subscribers are called
    only after it has been released.
    """

    def __init__(self) -> None:
        self._events: List[Event] = []
        self._subscribers: List[Subscriber] = []
        self._lock = threading.RLock()
        self._local = threading.local()

    # ----------------------------- thread state ---------------------------- #

    def _buffers(self) -> List[List[Event]]:
        try:
            return self._local.buffers
        except AttributeError:
            self._local.buffers = []
            return self._local.buffers

    def _outbox(self) -> Optional[List[Event]]:
        return getattr(self._local, "outbox", None)

    # ------------------------------- emission ------------------------------ #

    def emit(self, name: bytes, args: Mapping[str, Any]) -> Event:
        bname = _check_name(name)
        if not isinstance(args, Mapping):
            raise InvalidArgument("event args must be a mapping")
        checked = {_check_key(k): _check_value(v) for k, v in args.items()}
        ev = Event(bname, checked)
        buffers = self._buffers()
        if buffers:
            buffers[-1].append(ev)
        else:
            self._commit([ev])
        return ev

    def _commit(self, evs: List[Event]) -> None:
        if not evs:
            return
        with self._lock:
            self._events.extend(evs)
        outbox = self._outbox()
        if outbox is not None:
            outbox.extend(evs)
        else:
            self._deliver(evs)

    def _deliver(self, evs: Sequence[Event]) -> None:
        with self._lock:
            subscribers = tuple(self._subscribers)
        for ev in evs:
            for cb in subscribers:
                try:
                    cb(ev)
                except Exception:
                    log.warning("event subscriber %r failed on %s", cb, ev.name.decode("ascii", "replace"), exc_info=True)

    @contextmanager
    def checkpoint(self) -> Iterator["EventSink"]:
        """Hold this thread's events until the body succeeds; drop them if it raises."""
        buffers = self._buffers()
        buffers.append([])
        try:
            yield self
        except BaseException:
            buffers.pop()
            raise
        held = buffers.pop()
        if buffers:
            buffers[-1].extend(held)
        else:
            self._commit(held)

    @contextmanager
    def deferred(self) -> Iterator["EventSink"]:
        """Queue subscriber calls for events committed in the body until it exits."""
        if self._outbox() is not None:
            yield self
            return
        self._local.outbox = []
        try:
            yield self
        finally:
            pending, self._local.outbox = self._local.outbox, None
            self._deliver(pending)

    @contextmanager
    def atomic(self, lock: Any) -> Iterator["EventSink"]:
        with self.deferred():
            with lock, self.checkpoint():
                yield self

    # ------------------------------ subscribers ---------------------------- #

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register `callback`; returns a function that removes it again."""
        with self._lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe

    def iter_events(self) -> Iterable[Event]:
        with self._lock:
            return tuple(self._events)

    def events(self, name: bytes | None = None) -> List[Event]:
        return [e for e in self.iter_events() if name is None or e.name == name]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def __len__(self) -> int:
        return len(self._events)


def canonicalize(ev: Event) -> CanonicalEvent:
    enc: List[Dict[str, Any]] = []
    for k, v in ev.args.items():
        if isinstance(v, bytes):
            enc.append({"k": k, "t": "b", "v": "0x" + v.hex()})
        elif isinstance(v, bool):
            enc.append({"k": k, "t": "z", "v": v})
        else:
            enc.append({"k": k, "t": "i", "v": int(v)})
    return CanonicalEvent(name=ev.name.decode("ascii", "replace"), args=tuple(enc))


def events_for_receipt(sink: EventSink) -> List[CanonicalEvent]:
    """Convert the sink's log into canonical receipt events."""
    return [canonicalize(ev) for ev in sink.iter_events()]


__all__ = [
    "Event",
    "CanonicalEvent",
    "EventSink",
    "Subscriber",
    "canonicalize",
    "events_for_receipt",
    "DEPOSIT",
    "SUBMIT_TRANSACTION",
    "CONFIRM_TRANSACTION",
    "REVOKE_CONFIRMATION",
    "EXECUTE_TRANSACTION",
]
