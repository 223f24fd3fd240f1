"""The fixed, ordered admission scenarios.

Order matters: `dup` resubmits the transaction `ok` just got accepted, so the
list must not be reordered or run in parallel.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from . import errors, factory
from .types import Transaction


@dataclass(frozen=True)
class Scenario:
    name: str
    build: Callable[[int], Transaction]
    expected: str


SCENARIOS: tuple[Scenario, ...] = (
    Scenario("ok", factory.baseline, errors.ACCEPTED),
    Scenario("dup", factory.baseline, errors.DUPLICATE),
    Scenario("invalid_version", factory.invalid_version, errors.INVALID_VERSION),
    Scenario("invalid_nonce", factory.invalid_nonce, errors.INVALID_NONCE),
    Scenario(
        "valid_until_block_too_low",
        factory.expired_valid_until_block,
        errors.INVALID_VALID_UNTIL_BLOCK,
    ),
    Scenario(
        "valid_until_block_too_high",
        factory.far_valid_until_block,
        errors.INVALID_VALID_UNTIL_BLOCK,
    ),
    Scenario("invalid_value", factory.short_value, errors.INVALID_VALUE),
    Scenario("invalid_chain_id", factory.short_chain_id, errors.INVALID_CHAIN_ID),
)
