"""Wire-format encoding utilities.

Messages use the protobuf (proto3) binary layout: fields are written in
ascending field-number order and scalar fields holding their default value
are omitted, so a given field set always encodes to the same bytes. The
transaction hash is computed over these bytes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from .errors import ErrorCode, HarnessError
from .types import (
    Flag,
    GenerateKeyPairRequest,
    HashDataRequest,
    KeyPair,
    RawTransaction,
    SignMessageRequest,
    Transaction,
    TxKind,
    UnverifiedTransaction,
    Witness,
)

WIRE_VARINT = 0
WIRE_FIXED64 = 1
WIRE_LEN = 2
WIRE_FIXED32 = 5

U32_MAX = (1 << 32) - 1
U64_MAX = (1 << 64) - 1
_MAX_VARINT_BYTES = 10


@dataclass
class Writer:
    buf: bytearray

    def write_varint(self, v: int) -> None:
        v = int(v)
        if v < 0 or v > U64_MAX:
            raise HarnessError(ErrorCode.INVALID_FORMAT, f"varint out of range: {v}")
        while v > 0x7F:
            self.buf.append((v & 0x7F) | 0x80)
            v >>= 7
        self.buf.append(v)

    def write_tag(self, field_number: int, wire_type: int) -> None:
        self.write_varint((field_number << 3) | wire_type)

    def write_u32(self, field_number: int, v: int) -> None:
        if v > U32_MAX:
            raise HarnessError(ErrorCode.INVALID_FORMAT, f"field {field_number} must fit u32")
        self.write_u64(field_number, v)

    def write_u64(self, field_number: int, v: int) -> None:
        if v == 0:
            return
        self.write_tag(field_number, WIRE_VARINT)
        self.write_varint(v)

    def write_bool(self, field_number: int, v: bool) -> None:
        self.write_u64(field_number, 1 if v else 0)

    def write_bytes(self, field_number: int, b: bytes) -> None:
        if not b:
            return
        self._write_len_delimited(field_number, bytes(b))

    def write_string(self, field_number: int, s: str) -> None:
        self.write_bytes(field_number, s.encode())

    def write_message(self, field_number: int, encoded: Optional[bytes]) -> None:
        # Present sub-messages are written even when empty.
        if encoded is None:
            return
        self._write_len_delimited(field_number, encoded)

    def _write_len_delimited(self, field_number: int, b: bytes) -> None:
        self.write_tag(field_number, WIRE_LEN)
        self.write_varint(len(b))
        self.buf.extend(b)


@dataclass
class Reader:
    data: bytes
    pos: int = 0

    def at_end(self) -> bool:
        return self.pos >= len(self.data)

    def read_varint(self) -> int:
        result = 0
        for i in range(_MAX_VARINT_BYTES):
            if self.pos >= len(self.data):
                raise HarnessError(ErrorCode.MALFORMED_RESPONSE, "truncated varint")
            byte = self.data[self.pos]
            self.pos += 1
            result |= (byte & 0x7F) << (7 * i)
            if not byte & 0x80:
                return result & U64_MAX
        raise HarnessError(ErrorCode.MALFORMED_RESPONSE, "varint too long")

    def read_tag(self) -> tuple[int, int]:
        key = self.read_varint()
        field_number, wire_type = key >> 3, key & 0x07
        if field_number == 0:
            raise HarnessError(ErrorCode.MALFORMED_RESPONSE, "invalid field number 0")
        return field_number, wire_type

    def read_len_delimited(self) -> bytes:
        size = self.read_varint()
        end = self.pos + size
        if end > len(self.data):
            raise HarnessError(ErrorCode.MALFORMED_RESPONSE, "truncated length-delimited field")
        chunk = self.data[self.pos:end]
        self.pos = end
        return bytes(chunk)

    def skip(self, wire_type: int) -> None:
        if wire_type == WIRE_VARINT:
            self.read_varint()
        elif wire_type == WIRE_LEN:
            self.read_len_delimited()
        elif wire_type in (WIRE_FIXED64, WIRE_FIXED32):
            size = 8 if wire_type == WIRE_FIXED64 else 4
            if self.pos + size > len(self.data):
                raise HarnessError(ErrorCode.MALFORMED_RESPONSE, "truncated fixed-width field")
            self.pos += size
        else:
            raise HarnessError(ErrorCode.MALFORMED_RESPONSE, f"unsupported wire type {wire_type}")


def _expect_wire(field_number: int, wire_type: int, expected: int) -> None:
    if wire_type != expected:
        raise HarnessError(
            ErrorCode.MALFORMED_RESPONSE,
            f"field {field_number} has wire type {wire_type}, expected {expected}",
        )


def _read_fields(data: bytes, handlers: dict[int, tuple[int, Callable[[Reader], None]]]) -> None:
    """Walk every field in `data`, dispatching known ones and skipping the rest."""
    r = Reader(bytes(data))
    while not r.at_end():
        field_number, wire_type = r.read_tag()
        handler = handlers.get(field_number)
        if handler is None:
            r.skip(wire_type)
            continue
        expected, read = handler
        _expect_wire(field_number, wire_type, expected)
        read(r)


def _decode_string(raw: bytes) -> str:
    try:
        return raw.decode()
    except UnicodeDecodeError as e:
        raise HarnessError(ErrorCode.MALFORMED_RESPONSE, f"invalid utf-8 string: {e}") from e


def _single_field(data: bytes, wire_type: int, default):
    """Decode a message whose only field of interest is field 1."""
    values = {1: default}

    def _read(r: Reader) -> None:
        values[1] = r.read_varint() if wire_type == WIRE_VARINT else r.read_len_delimited()

    _read_fields(data, {1: (wire_type, _read)})
    return values[1]


# --- blockchain messages ---


def encode_transaction(tx: Transaction) -> bytes:
    w = Writer(bytearray())
    w.write_u32(1, tx.version)
    w.write_bytes(2, tx.to)
    w.write_string(3, tx.nonce)
    w.write_u64(4, tx.quota)
    w.write_u64(5, tx.valid_until_block)
    w.write_bytes(6, tx.data)
    w.write_bytes(7, tx.value)
    w.write_bytes(8, tx.chain_id)
    return bytes(w.buf)


def decode_transaction(data: bytes) -> Transaction:
    fields: dict = {
        "version": 0,
        "to": b"",
        "nonce": "",
        "quota": 0,
        "valid_until_block": 0,
        "data": b"",
        "value": b"",
        "chain_id": b"",
    }

    def _varint(name: str):
        return WIRE_VARINT, lambda r: fields.__setitem__(name, r.read_varint())

    def _bytes(name: str):
        return WIRE_LEN, lambda r: fields.__setitem__(name, r.read_len_delimited())

    _read_fields(
        data,
        {
            1: _varint("version"),
            2: _bytes("to"),
            3: (WIRE_LEN, lambda r: fields.__setitem__("nonce", _decode_string(r.read_len_delimited()))),
            4: _varint("quota"),
            5: _varint("valid_until_block"),
            6: _bytes("data"),
            7: _bytes("value"),
            8: _bytes("chain_id"),
        },
    )
    return Transaction(**fields)


def encode_witness(witness: Witness) -> bytes:
    w = Writer(bytearray())
    w.write_bytes(1, witness.signature)
    w.write_bytes(2, witness.sender)
    return bytes(w.buf)


def decode_witness(data: bytes) -> Witness:
    fields = {"signature": b"", "sender": b""}
    _read_fields(
        data,
        {
            1: (WIRE_LEN, lambda r: fields.__setitem__("signature", r.read_len_delimited())),
            2: (WIRE_LEN, lambda r: fields.__setitem__("sender", r.read_len_delimited())),
        },
    )
    return Witness(**fields)


def encode_unverified_transaction(utx: UnverifiedTransaction) -> bytes:
    w = Writer(bytearray())
    w.write_message(1, encode_transaction(utx.transaction) if utx.transaction else None)
    w.write_bytes(2, utx.transaction_hash)
    w.write_message(3, encode_witness(utx.witness) if utx.witness else None)
    return bytes(w.buf)


def decode_unverified_transaction(data: bytes) -> UnverifiedTransaction:
    fields: dict = {"transaction": None, "transaction_hash": b"", "witness": None}
    _read_fields(
        data,
        {
            1: (
                WIRE_LEN,
                lambda r: fields.__setitem__("transaction", decode_transaction(r.read_len_delimited())),
            ),
            2: (WIRE_LEN, lambda r: fields.__setitem__("transaction_hash", r.read_len_delimited())),
            3: (
                WIRE_LEN,
                lambda r: fields.__setitem__("witness", decode_witness(r.read_len_delimited())),
            ),
        },
    )
    return UnverifiedTransaction(**fields)


# --- controller messages ---


_RAW_TX_FIELDS = {
    TxKind.NORMAL: 1,
}


def encode_raw_transaction(raw: RawTransaction) -> bytes:
    if raw.kind != TxKind.NORMAL or raw.normal_tx is None:
        raise HarnessError(ErrorCode.INVALID_FORMAT, f"unsupported raw transaction kind: {raw.kind}")
    w = Writer(bytearray())
    w.write_message(_RAW_TX_FIELDS[raw.kind], encode_unverified_transaction(raw.normal_tx))
    return bytes(w.buf)


def decode_raw_transaction(data: bytes) -> RawTransaction:
    found: list[UnverifiedTransaction] = []
    _read_fields(
        data,
        {
            _RAW_TX_FIELDS[TxKind.NORMAL]: (
                WIRE_LEN,
                lambda r: found.append(decode_unverified_transaction(r.read_len_delimited())),
            ),
        },
    )
    if not found:
        raise HarnessError(ErrorCode.MALFORMED_RESPONSE, "raw transaction carries no normal_tx")
    # oneof: the last occurrence wins
    return RawTransaction.normal(found[-1])


def encode_flag(flag: Flag) -> bytes:
    w = Writer(bytearray())
    w.write_bool(1, flag.flag)
    return bytes(w.buf)


def decode_flag(data: bytes) -> Flag:
    return Flag(flag=bool(_single_field(data, WIRE_VARINT, 0)))


def encode_block_number(block_number: int) -> bytes:
    w = Writer(bytearray())
    w.write_u64(1, block_number)
    return bytes(w.buf)


def decode_block_number(data: bytes) -> int:
    return _single_field(data, WIRE_VARINT, 0)


def encode_hash(value: bytes) -> bytes:
    w = Writer(bytearray())
    w.write_bytes(1, value)
    return bytes(w.buf)


def decode_hash(data: bytes) -> bytes:
    return _single_field(data, WIRE_LEN, b"")


# --- kms messages ---


def encode_generate_key_pair_request(req: GenerateKeyPairRequest) -> bytes:
    w = Writer(bytearray())
    w.write_u32(1, req.crypt_type)
    w.write_string(2, req.description)
    return bytes(w.buf)


def decode_generate_key_pair_request(data: bytes) -> GenerateKeyPairRequest:
    fields: dict = {"crypt_type": 0, "description": ""}
    _read_fields(
        data,
        {
            1: (WIRE_VARINT, lambda r: fields.__setitem__("crypt_type", r.read_varint())),
            2: (
                WIRE_LEN,
                lambda r: fields.__setitem__("description", _decode_string(r.read_len_delimited())),
            ),
        },
    )
    return GenerateKeyPairRequest(**fields)


def encode_key_pair(key_pair: KeyPair) -> bytes:
    w = Writer(bytearray())
    w.write_u64(1, key_pair.key_id)
    w.write_bytes(2, key_pair.address)
    return bytes(w.buf)


def decode_key_pair(data: bytes) -> KeyPair:
    fields: dict = {"key_id": 0, "address": b""}
    _read_fields(
        data,
        {
            1: (WIRE_VARINT, lambda r: fields.__setitem__("key_id", r.read_varint())),
            2: (WIRE_LEN, lambda r: fields.__setitem__("address", r.read_len_delimited())),
        },
    )
    return KeyPair(**fields)


def _encode_key_request(key_id: int, payload: bytes) -> bytes:
    w = Writer(bytearray())
    w.write_u64(1, key_id)
    w.write_bytes(2, payload)
    return bytes(w.buf)


def _decode_key_request(data: bytes) -> tuple[int, bytes]:
    fields: dict = {1: 0, 2: b""}
    _read_fields(
        data,
        {
            1: (WIRE_VARINT, lambda r: fields.__setitem__(1, r.read_varint())),
            2: (WIRE_LEN, lambda r: fields.__setitem__(2, r.read_len_delimited())),
        },
    )
    return fields[1], fields[2]


def encode_hash_data_request(req: HashDataRequest) -> bytes:
    return _encode_key_request(req.key_id, req.data)


def decode_hash_data_request(data: bytes) -> HashDataRequest:
    key_id, payload = _decode_key_request(data)
    return HashDataRequest(key_id=key_id, data=payload)


def encode_sign_message_request(req: SignMessageRequest) -> bytes:
    return _encode_key_request(req.key_id, req.msg)


def decode_sign_message_request(data: bytes) -> SignMessageRequest:
    key_id, payload = _decode_key_request(data)
    return SignMessageRequest(key_id=key_id, msg=payload)


def encode_signature(signature: bytes) -> bytes:
    w = Writer(bytearray())
    w.write_bytes(1, signature)
    return bytes(w.buf)


def decode_signature(data: bytes) -> bytes:
    return _single_field(data, WIRE_LEN, b"")
