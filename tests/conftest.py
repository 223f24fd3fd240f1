"""Pytest fixtures: in-process kms and controller services on ephemeral ports."""

from __future__ import annotations

import hashlib
import socket
from concurrent import futures
from typing import Callable, Optional

import grpc
import pytest

from send_invalid_tx import errors
from send_invalid_tx.config import (
    CHAIN_ID_LEN,
    CONTROLLER_SERVICE,
    KMS_SERVICE,
    MAX_NONCE_LEN,
    TX_VERSION,
    VALID_UNTIL_BLOCK_LIMIT,
    VALUE_LEN,
)
from send_invalid_tx.encoding import (
    decode_flag,
    decode_generate_key_pair_request,
    decode_hash_data_request,
    decode_raw_transaction,
    decode_sign_message_request,
    encode_block_number,
    encode_hash,
    encode_key_pair,
    encode_signature,
    encode_transaction,
)
from send_invalid_tx.settings import HarnessConfig, ServiceConfig
from send_invalid_tx.types import KeyPair, RawTransaction, UnverifiedTransaction

KEY_ID = 7
ADDRESS = bytes(range(1, 21))


def tx_hash(tx_bytes: bytes) -> bytes:
    return hashlib.sha256(tx_bytes).digest()


class FakeKms:
    """kms stand-in: sha256 hashes, deterministic 64-byte signatures."""

    def __init__(self) -> None:
        self.port = 0
        self.key_requests: list = []
        self.hashed: list[bytes] = []
        self.signed: list[bytes] = []

    def generate_key_pair(self, request, context) -> KeyPair:
        self.key_requests.append(request)
        return KeyPair(key_id=KEY_ID, address=ADDRESS)

    def hash_data(self, request, context) -> bytes:
        self._check_key(request.key_id, context)
        self.hashed.append(request.data)
        return tx_hash(request.data)

    def sign_message(self, request, context) -> bytes:
        self._check_key(request.key_id, context)
        self.signed.append(request.msg)
        return hashlib.sha512(request.msg).digest()

    def _check_key(self, key_id: int, context) -> None:
        if key_id != KEY_ID:
            context.abort(grpc.StatusCode.NOT_FOUND, f"key {key_id} not found")

    def handler(self) -> grpc.GenericRpcHandler:
        return grpc.method_handlers_generic_handler(
            KMS_SERVICE,
            {
                "GenerateKeyPair": grpc.unary_unary_rpc_method_handler(
                    self.generate_key_pair,
                    request_deserializer=decode_generate_key_pair_request,
                    response_serializer=encode_key_pair,
                ),
                "HashData": grpc.unary_unary_rpc_method_handler(
                    self.hash_data,
                    request_deserializer=decode_hash_data_request,
                    response_serializer=encode_hash,
                ),
                "SignMessage": grpc.unary_unary_rpc_method_handler(
                    self.sign_message,
                    request_deserializer=decode_sign_message_request,
                    response_serializer=encode_signature,
                ),
            },
        )


class FakeController:
    """controller stand-in applying the transaction admission rules.

    `ignore` names rules to skip and `messages` overrides rejection messages,
    both to imitate a non-conforming node. `fail_with` makes every submission
    fail with the given status, `ack_hash` replaces the acknowledged hash.
    """

    def __init__(self, height: int = 100) -> None:
        self.port = 0
        self.height = height
        self.ignore: set[str] = set()
        self.messages: dict[str, str] = {}
        self.dedupe = True
        self.fail_with: Optional[tuple[grpc.StatusCode, str]] = None
        self.ack_hash: Optional[Callable[[UnverifiedTransaction], bytes]] = None
        self.flags: list[bool] = []
        self.submissions: list[RawTransaction] = []
        self.pool: set[bytes] = set()

    def get_block_number(self, request, context) -> int:
        self.flags.append(request.flag)
        return self.height

    def send_raw_transaction(self, request: RawTransaction, context) -> bytes:
        self.submissions.append(request)
        if self.fail_with is not None:
            context.abort(*self.fail_with)
        utx = request.normal_tx
        message = self.check(utx)
        if message is not None:
            context.abort(grpc.StatusCode.INVALID_ARGUMENT, message)
        if self.ack_hash is not None:
            return self.ack_hash(utx)
        return utx.transaction_hash

    def check(self, utx: UnverifiedTransaction) -> Optional[str]:
        tx = utx.transaction
        rules = [
            ("version", tx.version != TX_VERSION, errors.INVALID_VERSION),
            ("nonce", len(tx.nonce.encode()) > MAX_NONCE_LEN, errors.INVALID_NONCE),
            (
                "valid_until_block",
                not (self.height < tx.valid_until_block <= self.height + VALID_UNTIL_BLOCK_LIMIT),
                errors.INVALID_VALID_UNTIL_BLOCK,
            ),
            ("value", len(tx.value) != VALUE_LEN, errors.INVALID_VALUE),
            ("chain_id", len(tx.chain_id) != CHAIN_ID_LEN, errors.INVALID_CHAIN_ID),
        ]
        for name, broken, message in rules:
            if broken and name not in self.ignore:
                return self.messages.get(name, message)

        if utx.transaction_hash != tx_hash(encode_transaction(tx)):
            return "Invalid transaction_hash"
        if utx.witness is None or utx.witness.sender != ADDRESS:
            return "Invalid sender"

        if self.dedupe and utx.transaction_hash in self.pool:
            return self.messages.get("dup", errors.DUPLICATE)
        self.pool.add(utx.transaction_hash)
        return None

    def handler(self) -> grpc.GenericRpcHandler:
        return grpc.method_handlers_generic_handler(
            CONTROLLER_SERVICE,
            {
                "GetBlockNumber": grpc.unary_unary_rpc_method_handler(
                    self.get_block_number,
                    request_deserializer=decode_flag,
                    response_serializer=encode_block_number,
                ),
                "SendRawTransaction": grpc.unary_unary_rpc_method_handler(
                    self.send_raw_transaction,
                    request_deserializer=decode_raw_transaction,
                    response_serializer=encode_hash,
                ),
            },
        )


def _serve(handler: grpc.GenericRpcHandler) -> tuple[grpc.Server, int]:
    server = grpc.server(futures.ThreadPoolExecutor(max_workers=4))
    server.add_generic_rpc_handlers((handler,))
    port = server.add_insecure_port("127.0.0.1:0")
    server.start()
    return server, port


@pytest.fixture
def fake_kms():
    kms = FakeKms()
    server, kms.port = _serve(kms.handler())
    yield kms
    server.stop(None)


@pytest.fixture
def fake_controller():
    controller = FakeController()
    server, controller.port = _serve(controller.handler())
    yield controller
    server.stop(None)


@pytest.fixture
def unused_port() -> int:
    """A local port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def harness_config(fake_kms, fake_controller) -> HarnessConfig:
    return HarnessConfig(
        services={
            "kms": ServiceConfig(name="kms", host="127.0.0.1", port=fake_kms.port, timeout=5.0),
            "controller": ServiceConfig(
                name="controller", host="127.0.0.1", port=fake_controller.port, timeout=5.0
            ),
        },
        log_config=None,
        connect_timeout=5.0,
    )
