"""Ledger: the read/write RPC surface the reward gateway depends on.

Reads: user nonces, gas price, PGS pricing state, event logs.
Writes: reward mints and relayed gasless swaps, both through `submit_transaction`.
"""

from __future__ import annotations

import logging

from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted

from pegasus.chain.provider import ChainProvider
from pegasus.chain.signer import SigningService
from pegasus.errors import LedgerSubmissionError, LedgerUnavailable
from pegasus.models.schema import PricingState, SignedSwap, TxReceipt
from pegasus.tokens.constants import GASLESS_SWAP_ABI, REWARD_TOKEN_ABI

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class Ledger:
    def __init__(
        self,
        provider: ChainProvider,
        signer: SigningService,
        reward_token_address: str,
        gasless_swap_address: str,
        receipt_timeout: float = 120.0,
    ):
        self.provider = provider
        self.signer = signer
        self.receipt_timeout = receipt_timeout
        self.reward_token_address = reward_token_address
        self.gasless_swap_address = gasless_swap_address
        self.reward_token = provider.contract(reward_token_address, REWARD_TOKEN_ABI)
        self.gasless_swap = provider.contract(gasless_swap_address, GASLESS_SWAP_ABI)

    @property
    def chain_id(self) -> int:
        return self.provider.chain_id

    async def get_nonce(self, user: str) -> int:
        try:
            return await self.gasless_swap.functions.userNonces(Web3.to_checksum_address(user)).call()
        except Exception as e:
            raise LedgerUnavailable(f"userNonces({user}) failed: {e}") from e

    async def get_gas_price(self) -> int:
        try:
            return await self.provider.get_gas_price()
        except Exception as e:
            raise LedgerUnavailable(f"gas price unavailable: {e}") from e

    async def get_pricing_state(self) -> PricingState:
        try:
            multiplier, total, next_at, halvenings, per_dollar = (
                await self.reward_token.functions.getPricingInfo().call()
            )
            supply = await self.reward_token.functions.totalSupply().call()
            name = await self.reward_token.functions.name().call()
            symbol = await self.reward_token.functions.symbol().call()
        except Exception as e:
            raise LedgerUnavailable(f"pricing info unavailable: {e}") from e
        return PricingState(
            total_usd_swapped=total,
            price_multiplier=multiplier,
            halvening_count=halvenings,
            next_halvening_at=next_at,
            tokens_per_dollar=per_dollar,
            current_supply=supply,
            name=name,
            symbol=symbol,
            address=self.reward_token_address,
        )

    async def submit_transaction(self, call, value: int = 0) -> TxReceipt:
        """Send one transaction and wait for its receipt. Never retries."""
        try:
            tx_hash = await self.signer.send(call, value=value)
        except ContractLogicError as e:
            raise LedgerSubmissionError(f"transaction would revert: {e.message or e}") from e
        except Exception as e:
            raise LedgerSubmissionError(f"transaction submission failed: {e}") from e

        try:
            receipt = await self.provider.wait_for_receipt(tx_hash, timeout=self.receipt_timeout)
        except TimeExhausted as e:
            raise LedgerSubmissionError(
                f"transaction {tx_hash} not confirmed within {self.receipt_timeout}s", tx_hash=tx_hash
            ) from e
        except Exception as e:
            raise LedgerSubmissionError(f"receipt lookup failed: {e}", tx_hash=tx_hash) from e

        if receipt["status"] != 1:
            logger.warning(f"Transaction {tx_hash} reverted in block {receipt['blockNumber']}")
            raise LedgerSubmissionError(f"transaction {tx_hash} reverted", tx_hash=tx_hash)
        logger.debug(f"Transaction {tx_hash} confirmed in block {receipt['blockNumber']}")
        return TxReceipt(
            transaction_hash=Web3.to_hex(receipt["transactionHash"]),
            block_number=receipt["blockNumber"],
            status=receipt["status"],
        )

    async def mint_reward(self, to: str, amount: int, usd_swapped: int) -> TxReceipt:
        call = self.reward_token.functions.mintRewardForSwap(Web3.to_checksum_address(to), amount, usd_swapped)
        return await self.submit_transaction(call)

    async def execute_gasless_swap(self, signed: SignedSwap) -> TxReceipt:
        swap = signed.swap
        struct = (
            Web3.to_checksum_address(swap.user),
            Web3.to_checksum_address(swap.from_token),
            Web3.to_checksum_address(swap.to_token),
            swap.from_amount,
            swap.min_to_amount,
            swap.deadline,
            swap.nonce,
        )
        call = self.gasless_swap.functions.executeGaslessSwap(struct, Web3.to_bytes(hexstr=signed.signature))
        return await self.submit_transaction(call)

    async def query_events(
        self,
        event_name: str,
        argument_filters: dict | None = None,
        from_block: int | str = 0,
        to_block: int | str = "latest",
    ) -> list[dict]:
        """Fetch decoded reward-token events as plain dicts."""
        event = getattr(self.reward_token.events, event_name)
        try:
            logs = await event.get_logs(
                argument_filters=argument_filters or {},
                from_block=from_block,
                to_block=to_block,
            )
        except Exception as e:
            raise LedgerUnavailable(f"{event_name} log query failed: {e}") from e
        return [
            {
                "event": log["event"],
                "args": dict(log["args"]),
                "transactionHash": Web3.to_hex(log["transactionHash"]),
                "blockNumber": log["blockNumber"],
            }
            for log in logs
        ]

    async def reward_mints(self, user: str, from_block: int | str = 0, to_block: int | str = "latest") -> list[dict]:
        return await self.query_events(
            "Transfer",
            {"from": ZERO_ADDRESS, "to": Web3.to_checksum_address(user)},
            from_block,
            to_block,
        )
