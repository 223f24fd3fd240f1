"""kms and controller client tests against in-process services."""

from __future__ import annotations

import asyncio

import grpc
import pytest

from send_invalid_tx import errors
from send_invalid_tx.controller import ControllerClient
from send_invalid_tx.encoding import encode_transaction
from send_invalid_tx.errors import ErrorCode, HarnessError
from send_invalid_tx.factory import baseline, invalid_version
from send_invalid_tx.kms import KmsClient
from send_invalid_tx.settings import ServiceConfig
from send_invalid_tx.types import KeyPair

from conftest import ADDRESS, KEY_ID, tx_hash


async def _with_client(client, body):
    await client.connect(timeout=5.0)
    try:
        return await body(client)
    finally:
        await client.close()


def test_generate_key_pair(harness_config, fake_kms) -> None:
    key_pair = asyncio.run(
        _with_client(KmsClient(harness_config.kms), lambda kms: kms.generate_key_pair())
    )
    assert key_pair == KeyPair(key_id=KEY_ID, address=ADDRESS)
    request = fake_kms.key_requests[0]
    assert (request.crypt_type, request.description) == (1, "test")


def test_sign_transaction_hashes_encoded_bytes(harness_config, fake_kms) -> None:
    tx = baseline(100)
    key_pair = KeyPair(key_id=KEY_ID, address=ADDRESS)

    utx = asyncio.run(
        _with_client(
            KmsClient(harness_config.kms), lambda kms: kms.sign_transaction(key_pair, tx)
        )
    )

    assert fake_kms.hashed == [encode_transaction(tx)]
    assert utx.transaction == tx
    assert utx.transaction_hash == tx_hash(encode_transaction(tx))
    assert fake_kms.signed == [utx.transaction_hash]
    assert len(utx.witness.signature) == 64
    assert utx.witness.sender == ADDRESS


def test_unknown_key_is_fatal(harness_config) -> None:
    with pytest.raises(HarnessError) as exc:
        asyncio.run(
            _with_client(KmsClient(harness_config.kms), lambda kms: kms.hash_data(99, b"x"))
        )
    assert exc.value.code == ErrorCode.RPC_FAILED
    assert "NOT_FOUND" in exc.value.message


def test_get_block_number_sends_false_flag(harness_config, fake_controller) -> None:
    height = asyncio.run(
        _with_client(
            ControllerClient(harness_config.controller), lambda c: c.get_block_number()
        )
    )
    assert height == fake_controller.height
    assert fake_controller.flags == [False]


async def _sign_and_submit(config, tx, times: int = 1):
    kms = KmsClient(config.kms)
    controller = ControllerClient(config.controller)
    await kms.connect(timeout=5.0)
    await controller.connect(timeout=5.0)
    try:
        key_pair = await kms.generate_key_pair()
        outcomes = []
        for _ in range(times):
            utx = await kms.sign_transaction(key_pair, tx)
            outcomes.append(await controller.send_raw_transaction(utx))
        return outcomes
    finally:
        await kms.close()
        await controller.close()


def test_accepted_submission_is_success(harness_config, fake_controller) -> None:
    tx = baseline(fake_controller.height)
    [outcome] = asyncio.run(_sign_and_submit(harness_config, tx))
    assert outcome.accepted
    assert outcome.message == errors.ACCEPTED
    assert outcome.tx_hash == tx_hash(encode_transaction(tx))
    assert len(fake_controller.submissions) == 1


def test_resubmission_is_dup(harness_config, fake_controller) -> None:
    tx = baseline(fake_controller.height)
    first, second = asyncio.run(_sign_and_submit(harness_config, tx, times=2))
    assert first.accepted
    assert second.message == errors.DUPLICATE


def test_rejection_message_is_verbatim(harness_config, fake_controller) -> None:
    fake_controller.messages["version"] = "  Invalid version (got 1)\n"
    [outcome] = asyncio.run(
        _sign_and_submit(harness_config, invalid_version(fake_controller.height))
    )
    assert not outcome.accepted
    assert outcome.message == "  Invalid version (got 1)\n"


def test_transport_failure_is_fatal(harness_config, fake_controller) -> None:
    fake_controller.fail_with = (grpc.StatusCode.UNAVAILABLE, "shutting down")
    with pytest.raises(HarnessError) as exc:
        asyncio.run(_sign_and_submit(harness_config, baseline(fake_controller.height)))
    assert exc.value.code == ErrorCode.RPC_FAILED
    assert "UNAVAILABLE" in exc.value.message


def test_other_status_codes_are_outcomes(harness_config, fake_controller) -> None:
    fake_controller.fail_with = (grpc.StatusCode.ALREADY_EXISTS, "dup")
    [outcome] = asyncio.run(_sign_and_submit(harness_config, baseline(fake_controller.height)))
    assert outcome.message == "dup"


def test_empty_status_message_is_not_success(harness_config, fake_controller) -> None:
    fake_controller.fail_with = (grpc.StatusCode.INVALID_ARGUMENT, "")
    [outcome] = asyncio.run(_sign_and_submit(harness_config, baseline(fake_controller.height)))
    assert not outcome.accepted
    assert outcome.message == "INVALID_ARGUMENT"


def test_acknowledgment_without_hash_is_fatal(harness_config, fake_controller) -> None:
    fake_controller.ack_hash = lambda utx: b""
    with pytest.raises(HarnessError) as exc:
        asyncio.run(_sign_and_submit(harness_config, baseline(fake_controller.height)))
    assert exc.value.code == ErrorCode.MALFORMED_RESPONSE


def test_connect_to_closed_port_fails(unused_port) -> None:
    client = KmsClient(ServiceConfig(name="kms", host="127.0.0.1", port=unused_port))
    with pytest.raises(HarnessError) as exc:
        asyncio.run(client.connect(timeout=0.5))
    assert exc.value.code == ErrorCode.CONNECT_FAILED
    assert client.channel is None


def test_call_before_connect_is_rejected() -> None:
    client = ControllerClient(ServiceConfig(name="controller", host="127.0.0.1", port=1))
    with pytest.raises(HarnessError) as exc:
        asyncio.run(client.get_block_number())
    assert exc.value.code == ErrorCode.INVALID_STATE
