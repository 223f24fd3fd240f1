"""Harness error codes, exceptions and the controller's rejection messages."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ErrorCode(IntEnum):
    # Codec
    INVALID_FORMAT = 0x0100
    MALFORMED_RESPONSE = 0x0101

    # Transport
    CONNECT_FAILED = 0x0600
    RPC_FAILED = 0x0601

    # Internal
    INVALID_STATE = 0xFF00


@dataclass(frozen=True)
class HarnessError(Exception):
    """Infrastructure failure. Always fatal for the run."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.name}({self.code:#06x}): {self.message}"


# Allow Python's Exception machinery to set __traceback__/__context__/__cause__
# while keeping dataclass fields frozen.
_EXCEPTION_ATTRS = frozenset(("__traceback__", "__context__", "__cause__"))
_frozen_setattr = HarnessError.__setattr__


def _harness_error_setattr(self: HarnessError, name: str, value: object) -> None:
    if name in _EXCEPTION_ATTRS:
        object.__setattr__(self, name, value)
    else:
        _frozen_setattr(self, name, value)


HarnessError.__setattr__ = _harness_error_setattr  # type: ignore[method-assign]


# Controller rejection messages, compared byte-for-byte
ACCEPTED = ""
DUPLICATE = "dup"
INVALID_VERSION = "Invalid version"
INVALID_NONCE = "Invalid nonce"
INVALID_VALID_UNTIL_BLOCK = "Invalid valid_until_block"
INVALID_VALUE = "Invalid value"
INVALID_CHAIN_ID = "Invalid chain_id"
