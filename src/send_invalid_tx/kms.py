"""Signing client: key generation, hashing and signing through the kms service."""

from __future__ import annotations

import logging

from .config import CRYPT_TYPE, GENERATE_KEY_PAIR, HASH_DATA, KEY_DESCRIPTION, SIGN_MESSAGE
from .encoding import (
    decode_hash,
    decode_key_pair,
    decode_signature,
    encode_generate_key_pair_request,
    encode_hash_data_request,
    encode_sign_message_request,
    encode_transaction,
)
from .rpc import ServiceClient
from .types import (
    GenerateKeyPairRequest,
    HashDataRequest,
    KeyPair,
    SignMessageRequest,
    Transaction,
    UnverifiedTransaction,
    Witness,
)

logger = logging.getLogger(__name__)


class KmsClient(ServiceClient):
    """Client for `kms.KmsService`. Every failure is fatal."""

    async def generate_key_pair(
        self, crypt_type: int = CRYPT_TYPE, description: str = KEY_DESCRIPTION
    ) -> KeyPair:
        request = GenerateKeyPairRequest(crypt_type=crypt_type, description=description)
        raw = await self.call(GENERATE_KEY_PAIR, encode_generate_key_pair_request(request))
        key_pair = decode_key_pair(raw)
        logger.info(f"key id is {key_pair.key_id}")
        return key_pair

    async def hash_data(self, key_id: int, data: bytes) -> bytes:
        raw = await self.call(HASH_DATA, encode_hash_data_request(HashDataRequest(key_id, data)))
        return decode_hash(raw)

    async def sign_message(self, key_id: int, msg: bytes) -> bytes:
        raw = await self.call(SIGN_MESSAGE, encode_sign_message_request(SignMessageRequest(key_id, msg)))
        return decode_signature(raw)

    async def sign_transaction(self, key_pair: KeyPair, tx: Transaction) -> UnverifiedTransaction:
        """Hash the encoded transaction, sign the hash and wrap both with the tx."""
        tx_hash = await self.hash_data(key_pair.key_id, encode_transaction(tx))
        signature = await self.sign_message(key_pair.key_id, tx_hash)
        logger.debug(f"signed tx 0x{tx_hash.hex()}")
        return UnverifiedTransaction(
            transaction=tx,
            transaction_hash=tx_hash,
            witness=Witness(signature=signature, sender=key_pair.address),
        )
