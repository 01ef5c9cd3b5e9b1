"""Shared fixtures: an in-memory ledger, a DuckDB store and an EIP-712 signer."""

from __future__ import annotations

import pytest
from eth_account import Account
from eth_account.messages import encode_typed_data
from web3 import Web3

from pegasus.errors import LedgerUnavailable
from pegasus.models.schema import PricingState, SignedSwap, SwapAuthorization, TxReceipt
from pegasus.pricing.halvening import HalveningSchedule
from pegasus.rewards.verifier import SignatureVerifier, typed_data
from pegasus.storage.database import get_connection
from pegasus.tokens.constants import TOKEN_ADDRESSES
from pegasus.tokens.registry import TokenRegistry

CHAIN_ID = 42161
REWARD_TOKEN = "0x" + "a1" * 20
GASLESS_SWAP = "0x" + "b2" * 20
MAX_GAS_PRICE_WEI = 10**9
NOW = 1_700_000_000
FAR_FUTURE = 4_000_000_000

USER_ACCOUNT = Account.from_key("0x" + "11" * 32)
OTHER_ACCOUNT = Account.from_key("0x" + "22" * 32)


class FakeLedger:
    """Records every mutation so tests can assert on exactly-once behavior."""

    def __init__(self, nonce: int = 0, gas_price: int = 10**8, total_usd_swapped: int = 0):
        self.chain_id = CHAIN_ID
        self.gasless_swap_address = GASLESS_SWAP
        self.nonces: dict[str, int] = {}
        self.default_nonce = nonce
        self.gas_price = gas_price
        self.state = PricingState(total_usd_swapped=total_usd_swapped, address=REWARD_TOKEN)
        self.mints: list[tuple[str, int, int]] = []
        self.swaps: list[SignedSwap] = []
        self.mint_error: Exception | None = None
        self.pricing_error: Exception | None = None
        self.nonce_calls = 0

    async def get_nonce(self, user: str) -> int:
        self.nonce_calls += 1
        return self.nonces.get(user.lower(), self.default_nonce)

    async def get_gas_price(self) -> int:
        return self.gas_price

    async def get_pricing_state(self) -> PricingState:
        if self.pricing_error is not None:
            raise self.pricing_error
        return self.state

    def _receipt(self) -> TxReceipt:
        n = len(self.mints) + len(self.swaps)
        return TxReceipt(transaction_hash="0x" + f"{n:064x}", block_number=1000 + n, status=1)

    async def mint_reward(self, to: str, amount: int, usd_swapped: int) -> TxReceipt:
        if self.mint_error is not None:
            raise self.mint_error
        self.mints.append((to, amount, usd_swapped))
        self.state = self.state.model_copy(update={
            "total_usd_swapped": self.state.total_usd_swapped + usd_swapped,
            "current_supply": self.state.current_supply + amount,
        })
        return self._receipt()

    async def execute_gasless_swap(self, signed: SignedSwap) -> TxReceipt:
        self.swaps.append(signed)
        key = signed.swap.user.lower()
        self.nonces[key] = self.nonces.get(key, self.default_nonce) + 1
        return self._receipt()

    async def reward_mints(self, user: str, from_block=0, to_block="latest") -> list[dict]:
        return [
            {
                "event": "Transfer",
                "args": {"from": "0x" + "00" * 20, "to": to, "value": amount},
                "transactionHash": "0x" + f"{i + 1:064x}",
                "blockNumber": 1001 + i,
            }
            for i, (to, amount, _) in enumerate(self.mints)
            if to.lower() == user.lower()
        ]


class BrokenLedger(FakeLedger):
    async def get_pricing_state(self) -> PricingState:
        raise LedgerUnavailable("pricing info unavailable: connection refused")


def make_swap(user: str = USER_ACCOUNT.address, nonce: int = 0, deadline: int = FAR_FUTURE, **overrides) -> SwapAuthorization:
    fields = {
        "user": user,
        "from_token": TOKEN_ADDRESSES[CHAIN_ID]["USDC"],
        "to_token": TOKEN_ADDRESSES[CHAIN_ID]["WETH"],
        "from_amount": 100 * 10**6,
        "min_to_amount": 4 * 10**16,
        "deadline": deadline,
        "nonce": nonce,
    }
    fields.update(overrides)
    return SwapAuthorization(**fields)


def sign_swap(swap: SwapAuthorization, account=USER_ACCOUNT, chain_id: int = CHAIN_ID) -> SignedSwap:
    signable = encode_typed_data(full_message=typed_data(swap, chain_id, GASLESS_SWAP))
    signed = account.sign_message(signable)
    return SignedSwap(swap=swap, signature=Web3.to_hex(signed.signature))


@pytest.fixture
def registry():
    return TokenRegistry.default()


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def conn():
    connection = get_connection(":memory:")
    yield connection
    connection.close()


@pytest.fixture
def schedule():
    return HalveningSchedule()


@pytest.fixture
def verifier(ledger):
    return SignatureVerifier(
        ledger,
        chain_id=CHAIN_ID,
        verifying_contract=GASLESS_SWAP,
        max_gas_price_wei=MAX_GAS_PRICE_WEI,
    )
