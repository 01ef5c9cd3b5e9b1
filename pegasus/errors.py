"""Error taxonomy shared by the resolver, the gateway and the HTTP layer."""

from __future__ import annotations

from enum import Enum


class PegasusError(Exception):
    """Base class. `status_code` is the HTTP status the API maps it to."""

    status_code = 500


class ValidationError(PegasusError):
    """Malformed or missing input. User-fixable."""

    status_code = 400


class UpstreamUnavailable(PegasusError):
    """A single price source failed. Never escapes a price source adapter."""


class AllSourcesExhausted(PegasusError):
    """Every price source failed. Absorbed by the static default table."""


class AuthorizationFailure(str, Enum):
    EXPIRED = "Expired"
    INVALID_AMOUNT = "InvalidAmount"
    MALFORMED_SIGNATURE = "MalformedSignature"
    SIGNATURE_MISMATCH = "SignatureMismatch"
    NONCE_MISMATCH = "NonceMismatch"
    GAS_PRICE_EXCEEDED = "GasPriceExceeded"


class AuthorizationError(PegasusError):
    status_code = 400

    def __init__(self, reason: AuthorizationFailure, detail: str = ""):
        self.reason = reason
        self.detail = detail
        message = f"Authorization failed: {reason.value}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class DuplicateReward(PegasusError):
    status_code = 400

    def __init__(self, swap_transaction_id: str):
        self.swap_transaction_id = swap_transaction_id
        super().__init__(f"Tokens already rewarded for swap {swap_transaction_id}")


class LedgerSubmissionError(PegasusError):
    """A ledger-mutating transaction failed, reverted or timed out."""

    def __init__(self, message: str, tx_hash: str | None = None):
        self.tx_hash = tx_hash
        super().__init__(message)


class LedgerUnavailable(PegasusError):
    """A ledger read failed."""
