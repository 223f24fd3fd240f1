"""Submission client for the controller's RPC service."""

from __future__ import annotations

import logging

import grpc

from .config import BLOCK_NUMBER_FLAG, GET_BLOCK_NUMBER, SEND_RAW_TRANSACTION
from .encoding import decode_block_number, decode_hash, encode_flag, encode_raw_transaction
from .errors import ErrorCode, HarnessError
from .rpc import ServiceClient
from .types import Flag, Outcome, RawTransaction, UnverifiedTransaction

logger = logging.getLogger(__name__)

# Status codes that say nothing about the transaction itself.
TRANSPORT_FAILURES = frozenset({
    grpc.StatusCode.UNAVAILABLE,
    grpc.StatusCode.DEADLINE_EXCEEDED,
    grpc.StatusCode.UNIMPLEMENTED,
    grpc.StatusCode.CANCELLED,
})


class ControllerClient(ServiceClient):
    """Client for `controller.RPCService`."""

    async def get_block_number(self, flag: bool = BLOCK_NUMBER_FLAG) -> int:
        raw = await self.call(GET_BLOCK_NUMBER, encode_flag(Flag(flag=flag)))
        return decode_block_number(raw)

    async def send_raw_transaction(self, utx: UnverifiedTransaction) -> Outcome:
        """Submit once and classify the reply.

        An acknowledgment becomes `Outcome.success`, an error status becomes
        `Outcome.rejected` carrying the status message verbatim. Transport
        failures raise `HarnessError`. There is no retry.
        """
        request = encode_raw_transaction(RawTransaction.normal(utx))
        try:
            raw = await self._unary(SEND_RAW_TRANSACTION, request)
        except grpc.aio.AioRpcError as e:
            if e.code() in TRANSPORT_FAILURES:
                raise HarnessError(
                    ErrorCode.RPC_FAILED,
                    f"{SEND_RAW_TRANSACTION} failed: {e.code().name} {e.details()}",
                ) from e
            # An empty status message must not read as acceptance.
            message = e.details() or e.code().name
            logger.info(f"err {message}")
            return Outcome.rejected(message)

        tx_hash = decode_hash(raw)
        if not tx_hash:
            raise HarnessError(ErrorCode.MALFORMED_RESPONSE, "acknowledgment carries no tx hash")
        logger.info(f"tx hash 0x{tx_hash.hex()}")
        return Outcome.success(tx_hash)
