"""Pydantic v2 data models. Wire names are camelCase aliases."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class QuoteRequest(WireModel):
    from_token: str = Field(alias="fromToken")
    to_token: str = Field(alias="toToken")
    amount: Decimal = Field(description="Input amount in human units")
    chain_id: int = Field(default=1, alias="chainId", description="EVM chain ID")


class QuoteResult(WireModel):
    success: bool = True
    from_token: str = Field(alias="fromToken")
    to_token: str = Field(alias="toToken")
    from_amount: Decimal = Field(alias="fromAmount")
    to_amount: Decimal = Field(alias="toAmount", description="Output amount in human units")
    rate: Decimal
    source: str
    using_fallback: bool = Field(alias="usingFallback")
    chain_id: int = Field(alias="chainId")
    timestamp: int = Field(description="Unix epoch milliseconds")


class PriceResult(WireModel):
    success: bool = True
    from_token: str = Field(alias="fromToken")
    to_token: str = Field(alias="toToken")
    price: Decimal
    source: str
    using_fallback: bool = Field(alias="usingFallback")
    timestamp: int


class SwapAuthorization(WireModel):
    """EIP-712 GaslessSwap struct. Amounts are raw uint256 values."""

    user: str
    from_token: str = Field(alias="fromToken")
    to_token: str = Field(alias="toToken")
    from_amount: int = Field(alias="fromAmount")
    min_to_amount: int = Field(alias="minToAmount")
    deadline: int = Field(description="Unix seconds")
    nonce: int

    def typed_message(self) -> dict:
        return {
            "user": self.user,
            "fromToken": self.from_token,
            "toToken": self.to_token,
            "fromAmount": self.from_amount,
            "minToAmount": self.min_to_amount,
            "deadline": self.deadline,
            "nonce": self.nonce,
        }


class SignedSwap(WireModel):
    swap: SwapAuthorization
    signature: str


class RewardRequest(WireModel):
    user_address: str = Field(default="", alias="userAddress")
    swap_amount_usd: Decimal = Field(default=Decimal(0), alias="swapAmountUSD")
    swap_transaction_id: str = Field(default="", alias="swapTransactionId")
    authorization: SignedSwap | None = None


class PricingState(BaseModel):
    """On-chain PGS pricing state. USD and token amounts are 18-decimal wei."""

    total_usd_swapped: int = 0
    price_multiplier: int = 1
    halvening_count: int = 0
    next_halvening_at: int = 0
    tokens_per_dollar: int = 0
    current_supply: int = 0
    name: str = "Pegasus"
    symbol: str = "PGS"
    address: str = ""


class RewardReceipt(WireModel):
    user_address: str = Field(alias="userAddress")
    reward_tokens: Decimal = Field(alias="rewardTokens")
    reward_amount_wei: int = Field(alias="rewardAmountWei")
    transaction_hash: str = Field(alias="transactionHash")
    block_number: int = Field(alias="blockNumber")
    timestamp: str


class RelayReceipt(WireModel):
    user: str
    nonce: int
    transaction_hash: str = Field(alias="transactionHash")
    block_number: int = Field(alias="blockNumber")


class TxReceipt(BaseModel):
    """The subset of a transaction receipt the gateway relies on."""

    transaction_hash: str
    block_number: int
    status: int
