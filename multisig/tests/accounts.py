"""
Fixed 20-byte addresses shared by the multisig tests.

Patterns are easy to spot in failure output:
    A = 0x1111..., B = 0x2222..., C = 0x3333..., NON_OWNER = 0x4444...
"""

A = b"\x11" * 20
B = b"\x22" * 20
C = b"\x33" * 20
NON_OWNER = b"\x44" * 20
TARGET = b"\x55" * 20
ZERO = b"\x00" * 20

ONE_ETHER = 10**18


def hexaddr(addr: bytes) -> str:
    return "0x" + addr.hex()
