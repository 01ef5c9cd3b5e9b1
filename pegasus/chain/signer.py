"""Long-lived signing service holding the gateway owner key.

Built once at startup. The key never leaves this object; callers hand it a
contract call and get back a transaction hash.
"""

from __future__ import annotations

import asyncio
import logging

from eth_account import Account
from eth_account.signers.local import LocalAccount
from pydantic import SecretStr

from pegasus.chain.provider import ChainProvider

logger = logging.getLogger(__name__)


class SigningService:
    def __init__(self, provider: ChainProvider, private_key: SecretStr | str):
        secret = private_key.get_secret_value() if isinstance(private_key, SecretStr) else private_key
        if not secret:
            raise ValueError("OWNER_PRIVATE_KEY not set in .env")
        if not secret.startswith("0x"):
            secret = "0x" + secret
        self._account: LocalAccount = Account.from_key(secret)
        self.provider = provider
        # Serializes nonce allocation for the owner account
        self._lock = asyncio.Lock()

    @property
    def address(self) -> str:
        return self._account.address

    def __repr__(self) -> str:
        return f"SigningService(address={self.address}, chain_id={self.provider.chain_id})"

    async def send(self, call, value: int = 0) -> str:
        """Build, sign and broadcast a contract call. Returns the tx hash."""
        async with self._lock:
            nonce = await self.provider.get_transaction_count(self.address)
            tx = await call.build_transaction({
                "from": self.address,
                "nonce": nonce,
                "value": value,
                "chainId": self.provider.chain_id,
            })
            signed = self._account.sign_transaction(tx)
            tx_hash = await self.provider.send_raw_transaction(signed.raw_transaction)
        logger.info(f"Sent transaction {tx_hash} from {self.address} (nonce={nonce})")
        return tx_hash
