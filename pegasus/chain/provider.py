"""Async EVM chain provider using web3.py 7.x."""

from __future__ import annotations

from web3 import AsyncWeb3, AsyncHTTPProvider
from web3.middleware import ExtraDataToPOAMiddleware

from pegasus.config import get_settings
from pegasus.chain.registry import ChainConfig, get_chain_config


class ChainProvider:
    """Async web3 provider for any EVM chain."""

    def __init__(self, chain_id: int, rpc_url: str | None = None, timeout: float | None = None):
        self.chain_config: ChainConfig = get_chain_config(chain_id)
        settings = get_settings()
        rpc_url = rpc_url or settings.get_rpc_url(chain_id)
        timeout = timeout if timeout is not None else settings.request_timeout
        self.w3 = AsyncWeb3(AsyncHTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
        if self.chain_config.is_poa:
            self.w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

    @property
    def chain_id(self) -> int:
        return self.chain_config.chain_id

    def contract(self, address: str, abi: list[dict]):
        return self.w3.eth.contract(address=self.w3.to_checksum_address(address), abi=abi)

    async def get_latest_block_number(self) -> int:
        return await self.w3.eth.block_number

    async def get_gas_price(self) -> int:
        return await self.w3.eth.gas_price

    async def get_transaction_count(self, address: str, block: str = "pending") -> int:
        return await self.w3.eth.get_transaction_count(self.w3.to_checksum_address(address), block)

    async def send_raw_transaction(self, raw: bytes) -> str:
        tx_hash = await self.w3.eth.send_raw_transaction(raw)
        return self.w3.to_hex(tx_hash)

    async def wait_for_receipt(self, tx_hash: str, timeout: float):
        return await self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
