"""EIP-712 GaslessSwap verification and check ordering."""

import asyncio

import pytest

from pegasus.errors import AuthorizationError, AuthorizationFailure
from pegasus.models.schema import SignedSwap

from conftest import NOW, OTHER_ACCOUNT, USER_ACCOUNT, make_swap, sign_swap


def _verify(verifier, signed, now=NOW):
    return asyncio.run(verifier.verify(signed, now=now))


class TestVerify:
    def test_valid_authorization(self, verifier):
        result = _verify(verifier, sign_swap(make_swap()))
        assert result.ok
        assert result.reason is None

    def test_recovers_user(self, verifier):
        assert verifier.recover_signer(sign_swap(make_swap())) == USER_ACCOUNT.address

    def test_expired_regardless_of_signature(self, verifier, ledger):
        signed = SignedSwap(swap=make_swap(deadline=NOW - 1), signature="not-a-signature")
        result = _verify(verifier, signed)
        assert result.reason == AuthorizationFailure.EXPIRED
        assert ledger.nonce_calls == 0

    def test_deadline_equal_to_now_is_valid(self, verifier):
        assert _verify(verifier, sign_swap(make_swap(deadline=NOW))).ok

    @pytest.mark.parametrize("field", ["from_amount", "min_to_amount"])
    def test_zero_amount(self, verifier, field):
        result = _verify(verifier, sign_swap(make_swap(**{field: 0})))
        assert result.reason == AuthorizationFailure.INVALID_AMOUNT

    @pytest.mark.parametrize("signature", ["", "0x1234", "0x" + "zz" * 65, "ab" * 65 + "ab"])
    def test_malformed_signature(self, verifier, ledger, signature):
        result = _verify(verifier, SignedSwap(swap=make_swap(), signature=signature))
        assert result.reason == AuthorizationFailure.MALFORMED_SIGNATURE
        assert ledger.nonce_calls == 0

    def test_trailing_newline_is_malformed(self, verifier, ledger):
        signed = sign_swap(make_swap())
        result = _verify(verifier, SignedSwap(swap=signed.swap, signature=signed.signature + "\n"))
        assert result.reason == AuthorizationFailure.MALFORMED_SIGNATURE
        assert ledger.nonce_calls == 0

    def test_signed_by_someone_else(self, verifier, ledger):
        result = _verify(verifier, sign_swap(make_swap(), account=OTHER_ACCOUNT))
        assert result.reason == AuthorizationFailure.SIGNATURE_MISMATCH
        assert ledger.nonce_calls == 0

    def test_signed_for_another_chain(self, verifier):
        result = _verify(verifier, sign_swap(make_swap(), chain_id=1))
        assert result.reason == AuthorizationFailure.SIGNATURE_MISMATCH

    def test_tampered_amount(self, verifier):
        signed = sign_swap(make_swap())
        tampered = SignedSwap(swap=make_swap(min_to_amount=1), signature=signed.signature)
        assert _verify(verifier, tampered).reason == AuthorizationFailure.SIGNATURE_MISMATCH

    def test_nonce_mismatch(self, verifier, ledger):
        ledger.default_nonce = 3
        result = _verify(verifier, sign_swap(make_swap(nonce=2)))
        assert result.reason == AuthorizationFailure.NONCE_MISMATCH

    def test_gas_price_exceeded(self, verifier, ledger):
        ledger.gas_price = 2 * 10**9
        result = _verify(verifier, sign_swap(make_swap()))
        assert result.reason == AuthorizationFailure.GAS_PRICE_EXCEEDED

    def test_nonce_checked_before_gas_price(self, verifier, ledger):
        ledger.default_nonce = 7
        ledger.gas_price = 2 * 10**9
        result = _verify(verifier, sign_swap(make_swap(nonce=0)))
        assert result.reason == AuthorizationFailure.NONCE_MISMATCH

    def test_verify_never_changes_nonce(self, verifier, ledger):
        signed = sign_swap(make_swap())
        assert _verify(verifier, signed).ok
        assert _verify(verifier, signed).ok
        assert ledger.nonces == {}


class TestResult:
    def test_raise_for_failure(self, verifier):
        result = _verify(verifier, SignedSwap(swap=make_swap(deadline=NOW - 10), signature="0x"))
        with pytest.raises(AuthorizationError) as exc_info:
            result.raise_for_failure()
        assert exc_info.value.reason == AuthorizationFailure.EXPIRED
        assert "Expired" in str(exc_info.value)
