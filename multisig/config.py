"""
multisig.config: address width, payload/balance caps and policy flags.

This module centralizes configuration for the multisig wallet. It has NO
third-party deps and is safe to import very early.

Configuration precedence:
  1) Explicit overrides passed to load_config(overrides=...)
  2) Environment variables (MULTISIG_*)
  3) Hardcoded safe defaults below

Key env vars (case-insensitive where boolean):
  - MULTISIG_ADDRESS_LEN                 (int)   default: 20
  - MULTISIG_MAX_PAYLOAD_BYTES           (int)   default: 131_072   (128 KiB)
  - MULTISIG_MAX_BALANCE_BITS            (int)   default: 256
  - MULTISIG_ALLOW_POST_EXECUTION_VOTES  (bool)  default: false
  - MULTISIG_LOG_LEVEL                   (str)   default: INFO
  - MULTISIG_STATE_FILE                  (path)  default: ./multisig_state.json

Usage:
    from multisig.config import load_config
    CFG = load_config()
    if CFG.allow_post_execution_votes: ...
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

DEFAULT_STATE_FILE = "multisig_state.json"

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


# ----------------------------- helpers ---------------------------------------


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    val = raw.strip().lower()
    if val in ("1", "true", "t", "yes", "y", "on"):
        return True
    if val in ("0", "false", "f", "no", "n", "off"):
        return False
    return default


def _env_int(name: str, default: int, *, min_v: int, max_v: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        v = int(raw, 0)
    except ValueError:
        return default
    if v < min_v:
        return min_v
    if v > max_v:
        return max_v
    return v


def _env_level(name: str, default: str) -> str:
    raw = (os.getenv(name) or "").strip().upper()
    return raw if raw in _LOG_LEVELS else default


# ------------------------------- config --------------------------------------


@dataclass(frozen=True)
class MultisigConfig:
    # Address width in bytes (20 = EVM-style accounts)
    address_len: int = 20

    # Caps
    max_payload_bytes: int = 131_072
    max_balance_bits: int = 256

    # Policy: permit confirm/revoke on an already executed transaction
    allow_post_execution_votes: bool = False

    # Tooling
    log_level: str = "INFO"
    state_file: Path = Path(DEFAULT_STATE_FILE)

    @property
    def null_address(self) -> bytes:
        return b"\x00" * self.address_len

    @property
    def max_balance(self) -> int:
        return (1 << self.max_balance_bits) - 1

    def as_dict(self) -> Dict[str, Any]:
        return {
            "address_len": self.address_len,
            "max_payload_bytes": self.max_payload_bytes,
            "max_balance_bits": self.max_balance_bits,
            "allow_post_execution_votes": self.allow_post_execution_votes,
            "log_level": self.log_level,
            "state_file": str(self.state_file),
        }


def _from_env() -> MultisigConfig:
    state_raw = os.getenv("MULTISIG_STATE_FILE")
    return MultisigConfig(
        address_len=_env_int("MULTISIG_ADDRESS_LEN", 20, min_v=4, max_v=64),
        max_payload_bytes=_env_int("MULTISIG_MAX_PAYLOAD_BYTES", 131_072, min_v=0, max_v=8_388_608),
        max_balance_bits=_env_int("MULTISIG_MAX_BALANCE_BITS", 256, min_v=64, max_v=512),
        allow_post_execution_votes=_env_bool("MULTISIG_ALLOW_POST_EXECUTION_VOTES", False),
        log_level=_env_level("MULTISIG_LOG_LEVEL", "INFO"),
        state_file=Path(state_raw).expanduser() if state_raw else Path(DEFAULT_STATE_FILE),
    )


@lru_cache(maxsize=1)
def _cached_env_config() -> MultisigConfig:
    return _from_env()


def load_config(*, overrides: Optional[Mapping[str, Any]] = None, fresh: bool = False) -> MultisigConfig:
    """
    Build a MultisigConfig from environment + safe defaults.

    The environment snapshot is cached; pass ``fresh=True`` to re-read it
    (tests that monkeypatch env vars do this).
    """
    if fresh:
        _cached_env_config.cache_clear()
    cfg = _cached_env_config()
    if overrides:
        unknown = set(overrides) - set(cfg.as_dict())
        if unknown:
            raise ValueError(f"unknown config keys: {sorted(unknown)}")
        cfg = replace(cfg, **dict(overrides))
        if not isinstance(cfg.state_file, Path):
            cfg = replace(cfg, state_file=Path(cfg.state_file))
    if cfg.address_len <= 0:
        raise ValueError("address_len must be positive")
    if cfg.max_payload_bytes < 0:
        raise ValueError("max_payload_bytes must be non-negative")
    return cfg


__all__ = ["MultisigConfig", "load_config", "DEFAULT_STATE_FILE"]
