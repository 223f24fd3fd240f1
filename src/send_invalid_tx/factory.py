"""Transaction factory: the canonical valid transaction and its invalid variants.

Every mutator starts from `baseline(height)` and changes exactly one field,
so each rejection can only come from the rule that field is checked by.
"""

from __future__ import annotations

from dataclasses import replace

from .config import (
    ADDRESS_LEN,
    CHAIN_ID_LEN,
    DEFAULT_NONCE,
    DEFAULT_QUOTA,
    TX_VERSION,
    VALID_UNTIL_BLOCK_LIMIT,
    VALUE_LEN,
)
from .types import Transaction

# 129 bytes, one over MAX_NONCE_LEN
OVERSIZED_NONCE = "1" + "test" * 32

# valid_until_block offset well beyond VALID_UNTIL_BLOCK_LIMIT
FAR_FUTURE_OFFSET = 200


def baseline(height: int) -> Transaction:
    return Transaction(
        version=TX_VERSION,
        to=b"\x01" * ADDRESS_LEN,
        nonce=DEFAULT_NONCE,
        quota=DEFAULT_QUOTA,
        valid_until_block=height + VALID_UNTIL_BLOCK_LIMIT,
        data=b"",
        value=b"\x00" * VALUE_LEN,
        chain_id=b"\x00" * CHAIN_ID_LEN,
    )


def invalid_version(height: int) -> Transaction:
    return replace(baseline(height), version=TX_VERSION + 1)


def invalid_nonce(height: int) -> Transaction:
    return replace(baseline(height), nonce=OVERSIZED_NONCE)


def expired_valid_until_block(height: int) -> Transaction:
    """valid_until_block must be strictly above the current height."""
    return replace(baseline(height), valid_until_block=height)


def far_valid_until_block(height: int) -> Transaction:
    return replace(baseline(height), valid_until_block=height + FAR_FUTURE_OFFSET)


def short_value(height: int) -> Transaction:
    return replace(baseline(height), value=b"\x00" * (VALUE_LEN - 1))


def short_chain_id(height: int) -> Transaction:
    return replace(baseline(height), chain_id=b"\x00" * (CHAIN_ID_LEN - 1))
