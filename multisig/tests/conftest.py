# -*- coding: utf-8 -*-
"""
Shared fixtures for the multisig test-suite. Addresses live in
``multisig.tests.accounts``.
"""
from __future__ import annotations

import os
from typing import List

import pytest

from multisig.config import MultisigConfig, load_config
from multisig.wallet import MultisigWallet
from multisig.tests.accounts import A, B, C

# Keep dict/set hash-iteration stable.
os.environ.setdefault("PYTHONHASHSEED", "0")


@pytest.fixture(autouse=True)
def _fresh_config(monkeypatch: pytest.MonkeyPatch):
    """Isolate every test from MULTISIG_* variables of the calling shell."""
    for name in list(os.environ):
        if name.startswith("MULTISIG_"):
            monkeypatch.delenv(name, raising=False)
    load_config(fresh=True)
    yield
    load_config(fresh=True)


@pytest.fixture
def cfg() -> MultisigConfig:
    return MultisigConfig()


@pytest.fixture
def owners() -> List[bytes]:
    return [A, B, C]


@pytest.fixture
def wallet(owners: List[bytes], cfg: MultisigConfig) -> MultisigWallet:
    """2-of-3 wallet with the default treasury executor."""
    return MultisigWallet(owners, 2, config=cfg)
