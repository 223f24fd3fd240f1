"""Shared gRPC channel handling for the kms and controller clients.

Requests and responses cross the channel as raw bytes; each client encodes
and decodes its own messages with `encoding`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import grpc

from .errors import ErrorCode, HarnessError
from .settings import ServiceConfig

logger = logging.getLogger(__name__)


class ServiceClient:
    """One long-lived channel to a single service."""

    def __init__(self, config: ServiceConfig):
        self.config = config
        self.channel: Optional[grpc.aio.Channel] = None

    async def connect(self, timeout: float = 10.0) -> None:
        """Open the channel and wait until it is ready."""
        self.channel = grpc.aio.insecure_channel(self.config.target)
        try:
            await asyncio.wait_for(self.channel.channel_ready(), timeout=timeout)
        except asyncio.TimeoutError as e:
            await self.close()
            raise HarnessError(
                ErrorCode.CONNECT_FAILED,
                f"{self.config.name} service at {self.config.target} not reachable "
                f"within {timeout}s",
            ) from e

    async def close(self) -> None:
        """Close the channel."""
        if self.channel is not None:
            await self.channel.close()
            self.channel = None

    async def _unary(self, method: str, request: bytes) -> bytes:
        """Issue one unary call. Errors propagate as `grpc.aio.AioRpcError`."""
        if self.channel is None:
            raise HarnessError(
                ErrorCode.INVALID_STATE, f"{self.config.name} client is not connected"
            )
        call = self.channel.unary_unary(method)
        return await call(request, timeout=self.config.timeout)

    async def call(self, method: str, request: bytes) -> bytes:
        """Issue one unary call where any error status is fatal."""
        try:
            return await self._unary(method, request)
        except grpc.aio.AioRpcError as e:
            logger.error(f"[{self.config.name}] {method} failed: {e.code().name} {e.details()}")
            raise HarnessError(
                ErrorCode.RPC_FAILED,
                f"{method} failed: {e.code().name} {e.details()}",
            ) from e
