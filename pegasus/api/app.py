"""FastAPI surface: quotes, prices, reward minting, pricing info and the gasless relay."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from decimal import Decimal, InvalidOperation

import httpx
from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from pegasus.chain.registry import get_chain_config
from pegasus.config import Settings, get_settings
from pegasus.errors import (
    LedgerSubmissionError,
    LedgerUnavailable,
    PegasusError,
    ValidationError,
)
from pegasus.models.schema import QuoteRequest, RewardRequest, SignedSwap
from pegasus.pricing.resolver import FallbackResolver
from pegasus.rewards.gateway import RewardGateway
from pegasus.tokens.registry import TokenRegistry

logger = logging.getLogger(__name__)

SERVER_ERRORS = {
    LedgerSubmissionError: "Ledger transaction failed",
    LedgerUnavailable: "Ledger unavailable",
}


def build_resolver(client: httpx.AsyncClient, settings: Settings, registry: TokenRegistry) -> FallbackResolver:
    from pegasus.pricing.sources import CallWindow, CoinGeckoPriceSource, OneInchQuoteSource

    sources = [
        OneInchQuoteSource(client, registry, api_key=settings.oneinch_api_key, base_url=settings.oneinch_base_url),
        CoinGeckoPriceSource(
            client,
            registry,
            api_key=settings.coingecko_api_key,
            base_url=settings.coingecko_base_url,
            window=CallWindow(max_calls=settings.coingecko_calls_per_minute, window=60.0),
        ),
    ]
    return FallbackResolver(sources, registry)


def build_gateway(settings: Settings, conn) -> RewardGateway | None:
    """Wire the ledger and signing service. None when the chain side is not configured."""
    from pegasus.chain.ledger import Ledger
    from pegasus.chain.provider import ChainProvider
    from pegasus.chain.signer import SigningService
    from pegasus.pricing.halvening import HalveningSchedule
    from pegasus.rewards.verifier import SignatureVerifier

    if not (settings.reward_token_address and settings.gasless_swap_address
            and settings.owner_private_key.get_secret_value()):
        logger.warning("REWARD_TOKEN_ADDRESS, GASLESS_SWAP_ADDRESS or OWNER_PRIVATE_KEY missing; reward endpoints disabled")
        return None

    provider = ChainProvider(settings.chain_id)
    ledger = Ledger(
        provider,
        SigningService(provider, settings.owner_private_key),
        settings.reward_token_address,
        settings.gasless_swap_address,
        receipt_timeout=settings.receipt_timeout,
    )
    verifier = SignatureVerifier(
        ledger,
        chain_id=settings.chain_id,
        verifying_contract=settings.gasless_swap_address,
        max_gas_price_wei=settings.max_gas_price_wei,
        domain_name=settings.gasless_domain_name,
        domain_version=settings.gasless_domain_version,
    )
    schedule = HalveningSchedule(settings.halvening_threshold_usd, settings.base_tokens_per_dollar)
    logger.info(f"Reward gateway on chain {settings.chain_id} signing as {ledger.signer.address}")
    return RewardGateway(ledger, conn, schedule, verifier)


def _require(value: str | None, name: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"Missing required parameter: {name}")
    return value.strip()


def _parse_amount(value: str | None) -> Decimal:
    raw = _require(value, "amount")
    try:
        return Decimal(raw)
    except InvalidOperation as e:
        raise ValidationError(f"Invalid amount: {raw}") from e


def _parse_block(value: str) -> int | str:
    return int(value) if value.isdigit() else value


def create_app(
    settings: Settings | None = None,
    registry: TokenRegistry | None = None,
    resolver: FallbackResolver | None = None,
    gateway: RewardGateway | None = None,
) -> FastAPI:
    """Build the app. Anything not injected is created once in the lifespan."""
    settings = settings or get_settings()
    registry = registry or TokenRegistry.default()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = None
        conn = None
        app.state.resolver = resolver
        app.state.gateway = gateway
        if resolver is None:
            client = httpx.AsyncClient(timeout=settings.request_timeout)
            app.state.resolver = build_resolver(client, settings, registry)
        if gateway is None:
            from pegasus.storage.database import get_connection

            conn = get_connection(settings.duckdb_path)
            app.state.gateway = build_gateway(settings, conn)
        try:
            yield
        finally:
            if client is not None:
                await client.aclose()
            if conn is not None:
                conn.close()

    app = FastAPI(title="Pegasus Gateway", version="0.1.0", lifespan=lifespan)

    def _gateway(request: Request) -> RewardGateway:
        gw = request.app.state.gateway
        if gw is None:
            raise LedgerUnavailable("Reward gateway is not configured")
        return gw

    @app.exception_handler(PegasusError)
    async def pegasus_error_handler(request: Request, exc: PegasusError):
        if exc.status_code < 500:
            return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        label = next((v for k, v in SERVER_ERRORS.items() if isinstance(exc, k)), "Internal server error")
        return JSONResponse(status_code=exc.status_code, content={"error": label, "message": str(exc)})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"{request.method} {request.url.path} failed unexpectedly")
        return JSONResponse(status_code=500, content={"error": "Internal server error", "message": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        fields = ", ".join(".".join(str(p) for p in err["loc"][1:]) for err in exc.errors())
        return JSONResponse(status_code=400, content={"error": f"Invalid request: {fields or 'body'}"})

    @app.get("/health")
    async def health(request: Request):
        return {
            "status": "ok",
            "chainId": settings.chain_id,
            "chain": get_chain_config(settings.chain_id).name,
            "rewardsEnabled": request.app.state.gateway is not None,
        }

    @app.get("/quote")
    async def quote(
        request: Request,
        from_token: str | None = Query(None, alias="fromToken"),
        to_token: str | None = Query(None, alias="toToken"),
        amount: str | None = Query(None),
        chain_id: int = Query(1, alias="chainId"),
    ):
        quote_request = QuoteRequest(
            from_token=_require(from_token, "fromToken"),
            to_token=_require(to_token, "toToken"),
            amount=_parse_amount(amount),
            chain_id=chain_id,
        )
        result = await request.app.state.resolver.resolve_quote(quote_request)
        return result.to_wire()

    @app.get("/price")
    async def price(
        request: Request,
        from_token: str | None = Query(None, alias="fromToken"),
        to_token: str | None = Query(None, alias="toToken"),
        chain_id: int = Query(1, alias="chainId"),
    ):
        result = await request.app.state.resolver.resolve_price(
            _require(from_token, "fromToken"), _require(to_token, "toToken"), chain_id
        )
        return result.to_wire()

    @app.get("/tokens")
    async def tokens(chain_id: int = Query(1, alias="chainId")):
        return {"success": True, "chainId": chain_id, "tokens": registry.list_tokens(chain_id)}

    @app.post("/reward-tokens")
    async def reward_tokens(body: RewardRequest, request: Request):
        receipt = await _gateway(request).process(body)
        return {
            "success": True,
            "message": f"Successfully rewarded {receipt.reward_tokens} PGS tokens",
            "data": receipt.to_wire(),
        }

    @app.get("/pricing-info")
    async def pricing_info(request: Request):
        return {"success": True, "data": await _gateway(request).pricing_info()}

    @app.post("/gasless-swap")
    async def gasless_swap(body: SignedSwap, request: Request):
        receipt = await _gateway(request).relay_swap(body)
        return {"success": True, "data": receipt.to_wire()}

    @app.get("/reward-history")
    async def reward_history(
        request: Request,
        user_address: str | None = Query(None, alias="userAddress"),
        from_block: str = Query("0", alias="fromBlock"),
        to_block: str = Query("latest", alias="toBlock"),
    ):
        user = _require(user_address, "userAddress")
        events = await _gateway(request).reward_history(user, _parse_block(from_block), _parse_block(to_block))
        return {"success": True, "data": {"userAddress": user, "rewards": events}}

    return app
