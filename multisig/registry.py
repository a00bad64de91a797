"""
multisig.registry: the immutable owner set and confirmation threshold.

The registry is validated once, at construction, and never changes
afterwards. There is no API to add, remove or replace owners.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple

from .address import AddressLike, is_null, to_address, to_hex
from .config import MultisigConfig, load_config
from .errors import InvalidArgument, InvalidConstruction, NotOwner


@dataclass(frozen=True)
class OwnerRegistry:
    """
    Fixed M-of-N owner set.

    ``owners`` keeps construction order (reported by :meth:`owners`);
    membership checks go through a frozenset.
    """

    _owners: Tuple[bytes, ...]
    _threshold: int
    address_len: int
    _members: FrozenSet[bytes] = field(repr=False, compare=False)

    def __init__(
        self,
        owners: Iterable[AddressLike],
        num_confirmations_required: int,
        *,
        config: Optional[MultisigConfig] = None,
    ) -> None:
        cfg = config or load_config()
        alen = cfg.address_len

        raw = list(owners) if owners is not None else []
        if not raw:
            raise InvalidConstruction("owners required")

        normalized = []
        seen = set()
        for item in raw:
            try:
                addr = to_address(item, alen)
            except InvalidArgument as e:
                raise InvalidConstruction(f"invalid owner: {e.message}") from e
            if is_null(addr):
                raise InvalidConstruction("invalid owner", details={"owner": addr})
            if addr in seen:
                raise InvalidConstruction("owner not unique", details={"owner": addr})
            seen.add(addr)
            normalized.append(addr)

        m = num_confirmations_required
        # bool is an int subclass; reject it explicitly
        if isinstance(m, bool) or not isinstance(m, int):
            raise InvalidConstruction("invalid number of required confirmations")
        if not 0 < m <= len(normalized):
            raise InvalidConstruction(
                "invalid number of required confirmations",
                details={"threshold": m, "owners": len(normalized)},
            )

        object.__setattr__(self, "_owners", tuple(normalized))
        object.__setattr__(self, "_threshold", m)
        object.__setattr__(self, "address_len", alen)
        object.__setattr__(self, "_members", frozenset(normalized))

    # ---- queries ---- #

    def is_owner(self, address: Any) -> bool:
        """True iff `address` is one of the owners. Never raises."""
        try:
            addr = to_address(address, self.address_len)
        except InvalidArgument:
            return False
        return addr in self._members

    def num_confirmations_required(self) -> int:
        return self._threshold

    def owners(self) -> Tuple[bytes, ...]:
        return self._owners

    @property
    def size(self) -> int:
        return len(self._owners)

    def require_owner(self, address: Any) -> bytes:
        """Return the normalized `address` or raise NotOwner."""
        try:
            addr = to_address(address, self.address_len)
        except InvalidArgument as e:
            raise NotOwner(address) from e
        if addr not in self._members:
            raise NotOwner(addr)
        return addr

    # ---- persistence ---- #

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owners": [to_hex(a) for a in self._owners],
            "num_confirmations_required": self._threshold,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any], *, config: Optional[MultisigConfig] = None) -> "OwnerRegistry":
        return cls(d.get("owners") or [], d.get("num_confirmations_required", 0), config=config)


__all__ = ["OwnerRegistry"]
