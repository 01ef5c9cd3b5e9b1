"""EIP-712 GaslessSwap authorization checks.

Local checks (deadline, amounts, signature shape) run before anything touches
the ledger. The first failing check decides the reason.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass

from eth_account import Account
from eth_account.messages import encode_typed_data
from web3 import Web3

from pegasus.errors import AuthorizationError, AuthorizationFailure
from pegasus.models.schema import SignedSwap, SwapAuthorization
from pegasus.tokens.constants import GASLESS_SWAP_TYPES

logger = logging.getLogger(__name__)

SIGNATURE_PATTERN = re.compile(r"0x[0-9a-fA-F]{130}")

EIP712_DOMAIN_TYPE = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]


@dataclass(frozen=True)
class VerificationResult:
    ok: bool
    reason: AuthorizationFailure | None = None
    detail: str = ""

    def raise_for_failure(self) -> None:
        if not self.ok:
            raise AuthorizationError(self.reason, self.detail)


def _failed(reason: AuthorizationFailure, detail: str = "") -> VerificationResult:
    return VerificationResult(ok=False, reason=reason, detail=detail)


def typed_data(swap: SwapAuthorization, chain_id: int, verifying_contract: str,
               name: str = "GaslessSwapStation", version: str = "4") -> dict:
    """Full EIP-712 payload for a GaslessSwap, as a wallet would sign it."""
    message = swap.typed_message()
    for key in ("user", "fromToken", "toToken"):
        message[key] = Web3.to_checksum_address(message[key])
    return {
        "types": {"EIP712Domain": EIP712_DOMAIN_TYPE, **GASLESS_SWAP_TYPES},
        "primaryType": "GaslessSwap",
        "domain": {
            "name": name,
            "version": version,
            "chainId": chain_id,
            "verifyingContract": Web3.to_checksum_address(verifying_contract),
        },
        "message": message,
    }


class SignatureVerifier:
    def __init__(
        self,
        ledger,
        chain_id: int,
        verifying_contract: str,
        max_gas_price_wei: int,
        domain_name: str = "GaslessSwapStation",
        domain_version: str = "4",
    ):
        self.ledger = ledger
        self.chain_id = chain_id
        self.verifying_contract = verifying_contract
        self.max_gas_price_wei = max_gas_price_wei
        self.domain_name = domain_name
        self.domain_version = domain_version

    def recover_signer(self, signed: SignedSwap) -> str:
        signable = encode_typed_data(
            full_message=typed_data(
                signed.swap, self.chain_id, self.verifying_contract, self.domain_name, self.domain_version
            )
        )
        return Account.recover_message(signable, signature=Web3.to_bytes(hexstr=signed.signature))

    async def verify(self, signed: SignedSwap, now: int | None = None) -> VerificationResult:
        swap = signed.swap
        now = int(time.time()) if now is None else now

        if swap.deadline < now:
            return _failed(AuthorizationFailure.EXPIRED, f"deadline {swap.deadline} < {now}")
        if swap.from_amount <= 0 or swap.min_to_amount <= 0:
            return _failed(AuthorizationFailure.INVALID_AMOUNT)
        if not SIGNATURE_PATTERN.fullmatch(signed.signature or ""):
            return _failed(AuthorizationFailure.MALFORMED_SIGNATURE, "expected 65 bytes of hex")

        try:
            signer = self.recover_signer(signed)
        except Exception as e:  # eth_keys raises its own ValidationError on bad v/r/s
            logger.debug(f"Signature recovery failed for {swap.user}: {e}")
            return _failed(AuthorizationFailure.SIGNATURE_MISMATCH, "signature could not be recovered")
        if signer.lower() != swap.user.lower():
            return _failed(AuthorizationFailure.SIGNATURE_MISMATCH, f"recovered {signer}")

        expected_nonce = await self.ledger.get_nonce(swap.user)
        if swap.nonce != expected_nonce:
            return _failed(AuthorizationFailure.NONCE_MISMATCH, f"expected {expected_nonce}, got {swap.nonce}")

        gas_price = await self.ledger.get_gas_price()
        if gas_price > self.max_gas_price_wei:
            return _failed(
                AuthorizationFailure.GAS_PRICE_EXCEEDED, f"{gas_price} wei > {self.max_gas_price_wei} wei"
            )

        return VerificationResult(ok=True)
