"""
Connector base class.

A connector prices and executes swaps for one (chain, network) against one
DEX protocol. Pricing and calldata come from its router capability; nonces
and submission from the chain's NonceManager and a TxBroadcaster. The
variants differ only in where tokens come from, how symbols resolve and how
buy-side quotes are obtained.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from abc import ABC, abstractmethod
from decimal import Decimal
from fractions import Fraction
from typing import Any, Iterable, Mapping, Optional

from ...chains.base import Chain, Signer
from ...config import settings
from ...providers.base import BuildParams, RouteQuote, RouteRequest, RouterCapability
from ..errors import ConfigError, NoRouteError, NotReadyError, StaleRouteError
from ..execution.broadcaster import TxBroadcaster
from ..execution.calldata import ContractCall, router_call
from ..execution.models import (
    GasOverride,
    TradeIntent,
    TradeSide,
    TransactionHandle,
    execution_price,
    invert_price,
    maximum_amount_in,
    minimum_amount_out,
)
from ..gateway_config import ConnectorConfig
from ..tokens import Token, TokenRegistry
from .abi import RouterAbi, load_router_abi

logger = logging.getLogger(__name__)

FRACTION_PATTERN = re.compile(r"^\s*(\d+)\s*/\s*(\d+)\s*$")


def parse_fraction(value: str) -> Fraction:
    """Parse an 'n/d' slippage string into a Fraction in [0, 1)."""
    match = FRACTION_PATTERN.match(value or "")
    if not match:
        raise ConfigError(f"Malformed slippage {value!r}; expected 'n/d'")
    numerator, denominator = int(match.group(1)), int(match.group(2))
    if denominator == 0:
        raise ConfigError(f"Malformed slippage {value!r}; zero denominator")
    fraction = Fraction(numerator, denominator)
    if fraction >= 1:
        raise ConfigError(f"Slippage {value!r} must be below 100%")
    return fraction


class Connector(ABC):
    """
    Uniform price / trade contract over one DEX protocol on one network.

    Subclasses provide the token source; the uniswapish variant also
    overrides buy estimation with a native exact-out quote.
    """

    variant: str = ""
    router_abi: RouterAbi = ()

    def __init__(
        self,
        name: str,
        chain: Chain,
        config: ConnectorConfig,
        router: RouterCapability,
        secondary: Optional["Connector"] = None,
    ):
        self.name = name
        self.chain = chain
        self.config = config
        self.router = router
        self.secondary = secondary
        if config.router_abi:
            self.router_abi = load_router_abi(config.router_abi)
        self.tokens = TokenRegistry(chain.chain_id)
        self.broadcaster = TxBroadcaster(
            chain,
            chain.nonce_manager,
            submit_timeout_seconds=settings.submit_timeout_seconds,
        )
        self._ready = False
        self._init_lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name}@{self.chain.identity})"

    # Configuration

    @property
    def router_address(self) -> Optional[str]:
        return self.config.router_address(self.chain.chain, self.chain.network)

    @property
    def gas_limit_estimate(self) -> int:
        return self.config.gas_limit_estimate

    @property
    def ttl(self) -> int:
        return self.config.ttl

    @property
    def maximum_hops(self) -> int:
        return self.config.maximum_hops

    def get_allowed_slippage(self, override: Optional[str] = None) -> Fraction:
        """
        Allowed slippage from an 'n/d' override, else from the connector config.

        Raises:
            ConfigError: the override or the configured value is malformed
        """
        if override is not None:
            return parse_fraction(override)
        return parse_fraction(self.config.allowed_slippage)

    # Lifecycle

    def ready(self) -> bool:
        return self._ready

    async def initialize(self) -> None:
        """Wait for the chain, load tokens, initialize the secondary. Idempotent."""
        if self._ready:
            return
        async with self._init_lock:
            if self._ready:
                return
            if not self.chain.ready():
                await self.chain.init()
            added = self.tokens.load(self._token_entries())
            if self.secondary is not None:
                await self.secondary.initialize()
            self.tokens.seal()
            self._ready = True
            logger.info(f"{self!r} initialized with {added} tokens")

    @abstractmethod
    def _token_entries(self) -> Iterable[Mapping[str, Any]]:
        """Token-list entries to load into the registry."""
        pass

    def _require_ready(self) -> None:
        if not self._ready:
            raise NotReadyError(
                f"{self.name} on {self.chain.identity} is not initialized",
                details={"connector": self.name},
            )

    # Tokens

    def get_token_by_address(self, address: str) -> Optional[Token]:
        return self.tokens.get_by_address(address)

    def get_token_by_symbol(self, symbol: str) -> Optional[Token]:
        return self.tokens.get_by_symbol(symbol)

    # Pricing

    def _expiry(self, route: RouteQuote) -> float:
        if route.expires_at is not None:
            return route.expires_at
        return time.time() + self.config.quote_validity_seconds

    async def _quote(self, request: RouteRequest) -> RouteQuote:
        route = await self.router.quote(request)
        if route is None or route.amount_out <= 0 or route.amount_in <= 0:
            raise NoRouteError(
                f"No trade route found for {request.token_in.symbol} to {request.token_out.symbol}",
                details={
                    "connector": self.name,
                    "token_in": request.token_in.address,
                    "token_out": request.token_out.address,
                },
            )
        return route

    async def estimate_sell_trade(
        self,
        base: Token,
        quote: Token,
        amount: int,
        allowed_slippage: Optional[str] = None,
    ) -> TradeIntent:
        """
        Price selling `amount` of `base` for `quote`.

        expected_amount is the minimum `quote` received after slippage.

        Raises:
            NotReadyError, NoRouteError, ConfigError
        """
        self._require_ready()
        if amount <= 0:
            raise ConfigError("Trade amount must be positive")
        slippage = self.get_allowed_slippage(allowed_slippage)

        logger.info(f"Fetching trade data for {base.symbol}-{quote.symbol}.")
        route = await self._quote(
            RouteRequest(
                token_in=base,
                token_out=quote,
                amount=amount,
                exact_out=False,
                max_hops=self.maximum_hops,
                slippage=slippage,
            )
        )
        price = execution_price(base, route.amount_in, quote, route.amount_out)
        logger.info(
            f"Best trade for {base.symbol}-{quote.symbol}: {Decimal(price.numerator) / Decimal(price.denominator):.6f} {quote.symbol}."
        )

        return TradeIntent(
            connector=self.name,
            chain_id=self.chain.chain_id,
            side=TradeSide.SELL,
            base=base,
            quote=quote,
            amount=amount,
            token_in=base,
            token_out=quote,
            amount_in=route.amount_in,
            amount_out=route.amount_out,
            expected_amount=minimum_amount_out(route.amount_out, slippage),
            execution_price=price,
            allowed_slippage=slippage,
            route=route,
            expires_at=self._expiry(route),
        )

    async def estimate_buy_trade(
        self,
        quote: Token,
        base: Token,
        amount: int,
        allowed_slippage: Optional[str] = None,
    ) -> TradeIntent:
        """
        Price buying `amount` of `base` with `quote`.

        Priced as the opposite sell of `amount` base with the execution price
        inverted; the forward route is re-quoted at execution time.
        expected_amount is the maximum `quote` spent after slippage.
        """
        sell = await self.estimate_sell_trade(base, quote, amount, allowed_slippage)
        return TradeIntent(
            connector=self.name,
            chain_id=self.chain.chain_id,
            side=TradeSide.BUY,
            base=base,
            quote=quote,
            amount=amount,
            token_in=quote,
            token_out=base,
            amount_in=sell.amount_out,
            amount_out=amount,
            expected_amount=maximum_amount_in(sell.amount_out, sell.allowed_slippage),
            execution_price=invert_price(sell.execution_price),
            allowed_slippage=sell.allowed_slippage,
            route=sell.route,
            expires_at=sell.expires_at,
            route_reversed=True,
        )

    # Execution

    def _check_intent(self, intent: TradeIntent) -> None:
        if intent.connector != self.name or intent.chain_id != self.chain.chain_id:
            raise ConfigError(
                f"Trade was priced by {intent.connector} on chain {intent.chain_id}, "
                f"not {self.name} on {self.chain.chain_id}"
            )
        if intent.is_expired():
            raise StaleRouteError(
                f"Quote for {intent.token_in.symbol}-{intent.token_out.symbol} expired",
                details={"expires_at": intent.expires_at},
            )

    async def _forward_route(self, intent: TradeIntent) -> RouteQuote:
        """Route that actually runs: the stored one, or a fresh exact-in quote for reversed intents."""
        if not intent.route_reversed:
            return intent.route
        route = await self.router.quote(
            RouteRequest(
                token_in=intent.token_in,
                token_out=intent.token_out,
                amount=intent.amount_in,
                exact_out=False,
                max_hops=self.maximum_hops,
                slippage=intent.allowed_slippage,
            )
        )
        if route is None or route.amount_out < intent.minimum_out:
            raise StaleRouteError(
                f"Route for {intent.token_in.symbol}-{intent.token_out.symbol} moved past the allowed slippage",
                details={"minimum_out": intent.minimum_out},
            )
        return route

    def _is_exact_out(self, intent: TradeIntent) -> bool:
        return intent.side == TradeSide.BUY and not intent.route_reversed

    async def build_call(self, wallet: Signer, intent: TradeIntent) -> ContractCall:
        """Ask the router for the contract call executing `intent`."""
        route = await self._forward_route(intent)
        routed = await self.router.build(
            route,
            BuildParams(
                recipient=wallet.address,
                slippage=intent.allowed_slippage,
                deadline=int(time.time()) + self.ttl,
                exact_out=self._is_exact_out(intent),
            ),
        )
        if routed.amount_out is not None and routed.amount_out < intent.minimum_out:
            raise StaleRouteError(
                f"Built call for {intent.token_in.symbol}-{intent.token_out.symbol} returns "
                f"{routed.amount_out}, below the quoted minimum {intent.minimum_out}",
                details={"amount_out": routed.amount_out, "minimum_out": intent.minimum_out},
            )
        return router_call(
            self.router_address,
            self.router_abi,
            routed.method,
            routed.args,
            value=routed.value,
            to=routed.to,
            data=routed.data,
        )

    async def execute_trade(
        self,
        wallet: Signer,
        intent: TradeIntent,
        gas_price: Optional[Decimal],
        gas_limit: int,
        nonce: Optional[int] = None,
        max_fee_per_gas: Optional[int] = None,
        max_priority_fee_per_gas: Optional[int] = None,
    ) -> TransactionHandle:
        """
        Execute a trade previously priced by this connector.

        Args:
            wallet: Signer of the trading wallet
            intent: Result of estimate_sell_trade / estimate_buy_trade
            gas_price: Legacy gas price in gwei
            gas_limit: Gas limit
            nonce: Explicit nonce (replacement / manual retry)
            max_fee_per_gas: Fee-market max fee in wei; wins over gas_price
            max_priority_fee_per_gas: Fee-market tip in wei

        Raises:
            NotReadyError, StaleRouteError, StaleNonceError, BroadcastRejectedError, ConfigError
        """
        self._require_ready()
        self._check_intent(intent)
        gas = GasOverride.select(
            gas_limit,
            gas_price_gwei=gas_price,
            max_fee_per_gas=max_fee_per_gas,
            max_priority_fee_per_gas=max_priority_fee_per_gas,
        )

        call = await self.build_call(wallet, intent)
        # Router round trips may have outlived the quote
        self._check_intent(intent)

        reserved = await self.chain.nonce_manager.allocate(wallet.address, explicit_nonce=nonce)
        # submit() releases the nonce on every failure, cancellation included
        handle = await self.broadcaster.submit(wallet, call, gas, reserved)
        logger.info(f"Transaction Details: {handle.hash}")
        return handle
