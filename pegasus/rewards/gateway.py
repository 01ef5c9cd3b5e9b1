"""Reward gateway: validates a swap report, prices it on the halvening curve and mints once.

States per request:

    RECEIVED -> VALIDATED -> VERIFIED -> PRICING_COMPUTED -> SUBMITTED -> CONFIRMED
                    |            |              |                 |
                REJECTED     REJECTED         FAILED            FAILED

VERIFIED means the idempotency claim for the swap id is held. Once a claim is
held, every exit path either confirms it or marks it failed.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

import duckdb
from web3 import Web3

from pegasus.errors import (
    AuthorizationError,
    AuthorizationFailure,
    DuplicateReward,
    LedgerSubmissionError,
    PegasusError,
    ValidationError,
)
from pegasus.models.schema import PricingState, RelayReceipt, RewardReceipt, RewardRequest, SignedSwap
from pegasus.pricing.halvening import HalveningSchedule, format_wei, usd_to_wei
from pegasus.rewards.verifier import SignatureVerifier
from pegasus.storage import database

logger = logging.getLogger(__name__)

MIN_SWAP_TRANSACTION_ID_LENGTH = 10


class RewardState(str, Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    VERIFIED = "verified"
    PRICING_COMPUTED = "pricing_computed"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    FAILED = "failed"


def _transition(swap_id: str, state: RewardState, detail: str = "") -> None:
    suffix = f": {detail}" if detail else ""
    logger.info(f"Reward {swap_id} -> {state.value}{suffix}")


def validate_reward_request(request: RewardRequest) -> tuple[str, Decimal, int, str]:
    """Return (checksum user, usd amount, usd in wei, swap id) or raise ValidationError."""
    user = (request.user_address or "").strip()
    swap_id = (request.swap_transaction_id or "").strip()
    usd = request.swap_amount_usd

    if not user or not swap_id or usd is None:
        raise ValidationError("Missing required fields: userAddress, swapAmountUSD, swapTransactionId")
    if not Web3.is_address(user):
        raise ValidationError(f"Invalid user address: {user}")
    if not usd.is_finite() or usd <= 0:
        raise ValidationError("swapAmountUSD must be a positive number")
    try:
        usd_wei = usd_to_wei(usd)
    except (ValueError, ArithmeticError) as e:
        raise ValidationError("swapAmountUSD out of range") from e
    if len(swap_id) < MIN_SWAP_TRANSACTION_ID_LENGTH:
        raise ValidationError("Invalid swap transaction")
    return Web3.to_checksum_address(user), usd, usd_wei, swap_id


class RewardGateway:
    def __init__(
        self,
        ledger,
        conn: duckdb.DuckDBPyConnection,
        schedule: HalveningSchedule,
        verifier: SignatureVerifier | None = None,
    ):
        self.ledger = ledger
        self.conn = conn
        self.schedule = schedule
        self.verifier = verifier

    async def process(self, request: RewardRequest) -> RewardReceipt:
        swap_id = (request.swap_transaction_id or "").strip() or "<missing>"
        _transition(swap_id, RewardState.RECEIVED)
        try:
            user, usd, usd_wei, swap_id = validate_reward_request(request)
            _transition(swap_id, RewardState.VALIDATED)
            if request.authorization is not None:
                await self._authorize(user, request.authorization)
        except PegasusError as e:
            _transition(swap_id, RewardState.REJECTED, str(e))
            raise

        if not database.claim_reward(self.conn, swap_id, user, str(usd)):
            _transition(swap_id, RewardState.REJECTED, "duplicate")
            raise DuplicateReward(swap_id)
        _transition(swap_id, RewardState.VERIFIED)

        # The claim is held from here on: confirm it or release it as failed.
        try:
            state = await self.ledger.get_pricing_state()
            amount = self.schedule.reward_for(state.total_usd_swapped, usd_wei)
            if amount <= 0:
                raise ValidationError("Swap amount too small to earn a reward")
            database.set_reward_amount(self.conn, swap_id, amount)
            _transition(swap_id, RewardState.PRICING_COMPUTED, f"{format_wei(amount)} {state.symbol} for ${usd}")
        except PegasusError as e:
            database.fail_reward(self.conn, swap_id, str(e))
            _transition(swap_id, RewardState.FAILED, str(e))
            raise
        except Exception as e:
            database.fail_reward(self.conn, swap_id, str(e))
            _transition(swap_id, RewardState.FAILED, str(e))
            raise PegasusError(f"Reward pricing failed: {e}") from e

        # Shielded so a dropped client cannot cancel a mint that is already in flight.
        return await asyncio.shield(self._submit(swap_id, user, amount, usd_wei))

    async def _submit(self, swap_id: str, user: str, amount: int, usd_wei: int) -> RewardReceipt:
        _transition(swap_id, RewardState.SUBMITTED)
        try:
            receipt = await self.ledger.mint_reward(user, amount, usd_wei)
        except LedgerSubmissionError as e:
            database.fail_reward(self.conn, swap_id, str(e), mint_tx_hash=e.tx_hash)
            _transition(swap_id, RewardState.FAILED, str(e))
            raise
        except Exception as e:
            database.fail_reward(self.conn, swap_id, str(e))
            _transition(swap_id, RewardState.FAILED, str(e))
            raise LedgerSubmissionError(f"reward mint failed: {e}") from e

        database.confirm_reward(self.conn, swap_id, receipt.transaction_hash, receipt.block_number)
        _transition(swap_id, RewardState.CONFIRMED, receipt.transaction_hash)
        return RewardReceipt(
            user_address=user,
            reward_tokens=Web3.from_wei(amount, "ether"),
            reward_amount_wei=amount,
            transaction_hash=receipt.transaction_hash,
            block_number=receipt.block_number,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    async def _authorize(self, user: str, signed: SignedSwap) -> None:
        if self.verifier is None:
            raise ValidationError("Signed authorizations are not accepted by this gateway")
        if signed.swap.user.lower() != user.lower():
            raise AuthorizationError(AuthorizationFailure.SIGNATURE_MISMATCH, "authorization user differs from userAddress")
        result = await self.verifier.verify(signed)
        result.raise_for_failure()

    async def relay_swap(self, signed: SignedSwap) -> RelayReceipt:
        """Verify a signed GaslessSwap and submit it from the gateway account."""
        if self.verifier is None:
            raise ValidationError("Gasless relay is not configured")
        result = await self.verifier.verify(signed)
        if not result.ok:
            logger.info(f"Rejected gasless swap from {signed.swap.user}: {result.reason.value}")
        result.raise_for_failure()

        receipt = await asyncio.shield(self.ledger.execute_gasless_swap(signed))
        logger.info(f"Relayed gasless swap for {signed.swap.user} (nonce={signed.swap.nonce}) in {receipt.transaction_hash}")
        return RelayReceipt(
            user=signed.swap.user,
            nonce=signed.swap.nonce,
            transaction_hash=receipt.transaction_hash,
            block_number=receipt.block_number,
        )

    async def pricing_state(self) -> PricingState:
        return await self.ledger.get_pricing_state()

    async def pricing_info(self) -> dict:
        return self.schedule.pricing_info(await self.pricing_state())

    async def reward_history(
        self,
        user: str,
        from_block: int | str = 0,
        to_block: int | str = "latest",
    ) -> list[dict]:
        """On-chain reward mints received by `user`, oldest first."""
        if not user or not Web3.is_address(user):
            raise ValidationError(f"Invalid user address: {user}")
        events = await self.ledger.reward_mints(Web3.to_checksum_address(user), from_block, to_block)
        return [
            {
                "transactionHash": event["transactionHash"],
                "blockNumber": event["blockNumber"],
                "to": event["args"]["to"],
                "amount": format_wei(event["args"]["value"]),
                "amountWei": str(event["args"]["value"]),
            }
            for event in sorted(events, key=lambda e: e["blockNumber"])
        ]
