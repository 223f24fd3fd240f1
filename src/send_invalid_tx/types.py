"""Core types for the admission harness.

Field sets mirror the `blockchain`, `controller` and `kms` messages the
services exchange. Only the normal (account model) transaction kind is
modelled.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class Transaction:
    version: int
    to: bytes
    nonce: str
    quota: int
    valid_until_block: int
    data: bytes = b""
    value: bytes = b""
    chain_id: bytes = b""


@dataclass(frozen=True)
class Witness:
    signature: bytes
    sender: bytes


@dataclass(frozen=True)
class UnverifiedTransaction:
    transaction: Optional[Transaction]
    transaction_hash: bytes
    witness: Optional[Witness]


class TxKind(Enum):
    NORMAL = "normal_tx"


@dataclass(frozen=True)
class RawTransaction:
    """Tagged envelope submitted to the controller."""

    kind: TxKind
    normal_tx: Optional[UnverifiedTransaction] = None

    @classmethod
    def normal(cls, utx: UnverifiedTransaction) -> "RawTransaction":
        return cls(kind=TxKind.NORMAL, normal_tx=utx)


@dataclass(frozen=True)
class KeyPair:
    key_id: int
    address: bytes


@dataclass(frozen=True)
class Outcome:
    """What the controller said about one submission.

    `message` is the empty string on acceptance, otherwise the controller's
    status message unmodified.
    """

    message: str
    tx_hash: bytes = field(default=b"", compare=False)

    @property
    def accepted(self) -> bool:
        return self.message == ""

    @classmethod
    def success(cls, tx_hash: bytes) -> "Outcome":
        return cls(message="", tx_hash=tx_hash)

    @classmethod
    def rejected(cls, message: str) -> "Outcome":
        return cls(message=message)


# --- Request / response messages ---


@dataclass(frozen=True)
class GenerateKeyPairRequest:
    crypt_type: int
    description: str


@dataclass(frozen=True)
class HashDataRequest:
    key_id: int
    data: bytes


@dataclass(frozen=True)
class SignMessageRequest:
    key_id: int
    msg: bytes


@dataclass(frozen=True)
class Flag:
    flag: bool
