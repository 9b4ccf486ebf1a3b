"""
Request dispatcher.

Owns the chain and connector registries and turns HTTP-level requests into
connector calls. Everything returned to callers is already formatted in
human units; errors propagate as typed GatewayError subclasses.
"""

from __future__ import annotations

import time
from decimal import Decimal, localcontext
from fractions import Fraction
from typing import Optional, Tuple

import structlog

from ..chains.registry import ChainRegistry
from ..types.requests import (
    EstimateGasRequest,
    NonceRequest,
    PriceRequest,
    TradeRequest,
)
from ..types.responses import (
    EstimateGasResponse,
    NonceResponse,
    PriceResponse,
    TokenInfo,
    TokensResponse,
    TradeResponse,
)
from .connectors.base import Connector
from .connectors.registry import ConnectorRegistry
from .errors import PriceLimitError, UnknownTokenError
from .execution.models import TradeIntent, TradeSide, invert_price
from .gateway_config import GatewayConfig, load_gateway_config
from .tokens import Token

logger = structlog.stdlib.get_logger(__name__)

PRICE_PLACES = 18


def fraction_to_str(value: Fraction, places: int = PRICE_PLACES) -> str:
    """Decimal string of an exact fraction, rounded to `places` and trimmed."""
    with localcontext() as ctx:
        ctx.prec = 80
        quantized = (Decimal(value.numerator) / Decimal(value.denominator)).quantize(
            Decimal(1).scaleb(-places)
        )
        return format(quantized.normalize(), "f")


class Gateway:
    """Entry point for every price, trade and chain query."""

    def __init__(
        self,
        config: GatewayConfig,
        chains: Optional[ChainRegistry] = None,
        connectors: Optional[ConnectorRegistry] = None,
    ):
        self.config = config
        self.chains = chains or ChainRegistry(config)
        self.connectors = connectors or ConnectorRegistry(config, self.chains)

    async def get_connector(self, connector: str, chain: str, network: str) -> Connector:
        """Cached connector instance, initialized on first use."""
        instance = self.connectors.get(connector, chain, network)
        if not instance.ready():
            await instance.initialize()
        return instance

    @staticmethod
    def resolve_token(connector: Connector, value: str) -> Token:
        """Look a token up by address, then by symbol."""
        token = None
        if value.lower().startswith("0x"):
            token = connector.get_token_by_address(value)
        if token is None:
            token = connector.get_token_by_symbol(value)
        if token is None:
            raise UnknownTokenError(
                f"Token {value} is not supported by {connector.name} on {connector.chain.identity}",
                details={"token": value, "connector": connector.name},
            )
        return token

    async def _estimate(self, connector: Connector, req: PriceRequest) -> Tuple[Token, Token, TradeIntent]:
        base = self.resolve_token(connector, req.base)
        quote = self.resolve_token(connector, req.quote)
        amount = base.to_raw(req.amount)
        if req.side == TradeSide.BUY:
            intent = await connector.estimate_buy_trade(quote, base, amount, req.allowed_slippage)
        else:
            intent = await connector.estimate_sell_trade(base, quote, amount, req.allowed_slippage)
        return base, quote, intent

    @staticmethod
    def quote_price(intent: TradeIntent) -> Fraction:
        """Price in quote per base, whichever side was traded."""
        if intent.side == TradeSide.BUY:
            return invert_price(intent.execution_price)
        return intent.execution_price

    async def _gas_fields(self, connector: Connector, started: float) -> dict:
        gas_price = await connector.chain.gas_price()
        gas_limit = connector.gas_limit_estimate
        return {
            "network": connector.chain.network,
            "timestamp": int(started * 1000),
            "latency": round(time.time() - started, 3),
            "gas_price": float(gas_price),
            "gas_price_token": connector.chain.gas_price_token,
            "gas_limit": gas_limit,
            "gas_cost": format((gas_price * gas_limit / Decimal(10) ** 9).normalize(), "f"),
        }

    def _price_fields(self, base: Token, quote: Token, intent: TradeIntent, req: PriceRequest) -> dict:
        return {
            "base": base.address,
            "quote": quote.address,
            "amount": format(req.amount, "f"),
            "raw_amount": str(intent.amount),
            "expected_amount": quote.format_raw(intent.expected_amount),
            "price": fraction_to_str(self.quote_price(intent)),
        }

    async def price(self, req: PriceRequest) -> PriceResponse:
        started = time.time()
        connector = await self.get_connector(req.connector, req.chain, req.network)
        base, quote, intent = await self._estimate(connector, req)
        fields = self._price_fields(base, quote, intent, req)
        fields.update(await self._gas_fields(connector, started))
        return PriceResponse(**fields)

    @staticmethod
    def check_limit_price(side: TradeSide, price: Fraction, limit: Decimal) -> None:
        """SELL must not go below the limit, BUY must not go above it."""
        limit_fraction = Fraction(limit)
        if side == TradeSide.SELL and price < limit_fraction:
            raise PriceLimitError(
                f"Swap price {fraction_to_str(price)} lower than limitPrice {limit}",
                details={"price": fraction_to_str(price), "limit_price": str(limit)},
            )
        if side == TradeSide.BUY and price > limit_fraction:
            raise PriceLimitError(
                f"Swap price {fraction_to_str(price)} exceeds limitPrice {limit}",
                details={"price": fraction_to_str(price), "limit_price": str(limit)},
            )

    async def trade(self, req: TradeRequest) -> TradeResponse:
        started = time.time()
        connector = await self.get_connector(req.connector, req.chain, req.network)
        wallet = connector.chain.get_signer(req.address)
        base, quote, intent = await self._estimate(connector, req)

        price = self.quote_price(intent)
        if req.limit_price is not None:
            self.check_limit_price(intent.side, price, req.limit_price)

        gas_price = await connector.chain.gas_price()
        handle = await connector.execute_trade(
            wallet,
            intent,
            gas_price,
            connector.gas_limit_estimate,
            nonce=req.nonce,
            max_fee_per_gas=req.max_fee_per_gas,
            max_priority_fee_per_gas=req.max_priority_fee_per_gas,
        )
        logger.info(
            "trade_submitted",
            connector=connector.name,
            chain=str(connector.chain.identity),
            side=intent.side.value,
            tx_hash=handle.hash,
            nonce=handle.nonce,
        )

        fields = self._price_fields(base, quote, intent, req)
        fields.update(await self._gas_fields(connector, started))
        return TradeResponse(**fields, tx_hash=handle.hash, nonce=handle.nonce)

    async def estimate_gas(self, req: EstimateGasRequest) -> EstimateGasResponse:
        started = time.time()
        connector = await self.get_connector(req.connector, req.chain, req.network)
        return EstimateGasResponse(**(await self._gas_fields(connector, started)))

    async def nonce(self, req: NonceRequest) -> NonceResponse:
        """Last nonce used by the wallet; -1 when it never sent a transaction."""
        chain = self.chains.get(req.chain, req.network)
        wallet = chain.get_signer(req.address)
        await chain.nonce_manager.peek_next(wallet.address)
        state = chain.nonce_manager.get_state(wallet.address)
        if state.last_assigned is not None:
            return NonceResponse(nonce=state.last_assigned)
        return NonceResponse(nonce=max(state.next_nonce, state.confirmed_nonce) - 1)

    async def next_nonce(self, req: NonceRequest) -> NonceResponse:
        chain = self.chains.get(req.chain, req.network)
        wallet = chain.get_signer(req.address)
        return NonceResponse(nonce=await chain.nonce_manager.peek_next(wallet.address))

    async def tokens(self, connector: str, chain: str, network: str) -> TokensResponse:
        instance = await self.get_connector(connector, chain, network)
        return TokensResponse(
            tokens=[TokenInfo(**token.to_dict()) for token in instance.tokens.tokens()]
        )

    async def close(self) -> None:
        await self.connectors.close()
        await self.chains.close()


_gateway: Optional[Gateway] = None


def get_gateway() -> Gateway:
    """Process-wide Gateway built from the YAML config (FastAPI dependency)."""
    global _gateway
    if _gateway is None:
        _gateway = Gateway(load_gateway_config())
    return _gateway


async def shutdown_gateway() -> None:
    global _gateway
    if _gateway is not None:
        await _gateway.close()
        _gateway = None
