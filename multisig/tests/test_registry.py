from __future__ import annotations

import pytest

from multisig.config import MultisigConfig
from multisig.errors import InvalidConstruction, NotOwner
from multisig.registry import OwnerRegistry
from multisig.tests.accounts import A, B, C, NON_OWNER, ZERO


def test_valid_construction_reports_owners_and_threshold() -> None:
    reg = OwnerRegistry([A, B, C], 2)
    assert reg.is_owner(A) and reg.is_owner(B) and reg.is_owner(C)
    assert not reg.is_owner(NON_OWNER)
    assert reg.num_confirmations_required() == 2
    assert reg.owners() == (A, B, C)
    assert reg.size == 3


def test_hex_owner_addresses_are_normalized() -> None:
    reg = OwnerRegistry(["0x" + A.hex(), B.hex().upper()], 1)
    assert reg.owners() == (A, B)
    assert reg.is_owner("0x" + B.hex())


@pytest.mark.parametrize(
    "owners, m",
    [
        ([], 1),
        ([A, B, A], 2),
        ([A, ZERO], 1),
        ([A, B, C], 0),
        ([A, B, C], 4),
        ([A, B, C], -1),
        ([A, b"\x01" * 19], 1),
        (["0xzz"], 1),
    ],
)
def test_invalid_construction_rejected(owners, m) -> None:
    with pytest.raises(InvalidConstruction):
        OwnerRegistry(owners, m)


@pytest.mark.parametrize("m", [True, 1.0, "2", None])
def test_threshold_must_be_an_int(m) -> None:
    with pytest.raises(InvalidConstruction):
        OwnerRegistry([A, B], m)


def test_is_owner_never_raises_on_malformed_input() -> None:
    reg = OwnerRegistry([A], 1)
    assert reg.is_owner(b"short") is False
    assert reg.is_owner("not-hex") is False
    assert reg.is_owner(12345) is False
    assert reg.is_owner(None) is False


def test_require_owner() -> None:
    reg = OwnerRegistry([A, B], 1)
    assert reg.require_owner("0x" + A.hex()) == A
    with pytest.raises(NotOwner) as ei:
        reg.require_owner(NON_OWNER)
    assert ei.value.code == "NOT_OWNER"
    assert ei.value.details["caller"] == "0x" + NON_OWNER.hex()
    with pytest.raises(NotOwner):
        reg.require_owner(b"\x11")


def test_registry_is_immutable() -> None:
    reg = OwnerRegistry([A, B], 1)
    with pytest.raises(AttributeError):
        reg._threshold = 2  # type: ignore[misc]
    assert not hasattr(reg, "add_owner")
    assert not hasattr(reg, "remove_owner")


def test_address_len_comes_from_config() -> None:
    cfg = MultisigConfig(address_len=32)
    reg = OwnerRegistry([b"\x01" * 32], 1, config=cfg)
    assert reg.is_owner(b"\x01" * 32)
    with pytest.raises(InvalidConstruction):
        OwnerRegistry([A], 1, config=cfg)


def test_dict_round_trip_preserves_order() -> None:
    reg = OwnerRegistry([C, A, B], 3)
    again = OwnerRegistry.from_dict(reg.to_dict())
    assert again.owners() == (C, A, B)
    assert again.num_confirmations_required() == 3
