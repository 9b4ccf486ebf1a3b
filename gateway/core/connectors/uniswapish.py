"""
Constant-product router connector (Uniswap V2, Ubeswap, Pangolin, ...).
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

from ...providers.base import RouteRequest
from ..errors import ConfigError
from ..execution.models import (
    TradeIntent,
    TradeSide,
    execution_price,
    invert_price,
    maximum_amount_in,
)
from ..tokens import Token
from .abi import UNISWAP_V2_ROUTER_ABI
from .base import Connector

logger = logging.getLogger(__name__)


class UniswapishConnector(Connector):
    """
    Tokens come from the chain's token list; buys are quoted natively as
    exact-out swaps. The router returns {method, args, value}, encoded here
    against the bundled V2 router ABI.
    """

    variant = "uniswapish"
    router_abi = UNISWAP_V2_ROUTER_ABI

    def _token_entries(self) -> Iterable[Mapping[str, Any]]:
        return self.chain.stored_token_list

    async def estimate_buy_trade(
        self,
        quote: Token,
        base: Token,
        amount: int,
        allowed_slippage: Optional[str] = None,
    ) -> TradeIntent:
        self._require_ready()
        if amount <= 0:
            raise ConfigError("Trade amount must be positive")
        slippage = self.get_allowed_slippage(allowed_slippage)

        logger.info(f"Fetching pair data for {quote.symbol}-{base.symbol}.")
        route = await self._quote(
            RouteRequest(
                token_in=quote,
                token_out=base,
                amount=amount,
                exact_out=True,
                max_hops=self.maximum_hops,
                slippage=slippage,
            )
        )
        price = execution_price(quote, route.amount_in, base, route.amount_out)
        inverted = invert_price(price)
        logger.info(
            f"Best trade for {quote.symbol}-{base.symbol}: "
            f"{inverted.numerator / inverted.denominator:.6f} {quote.symbol}."
        )

        return TradeIntent(
            connector=self.name,
            chain_id=self.chain.chain_id,
            side=TradeSide.BUY,
            base=base,
            quote=quote,
            amount=amount,
            token_in=quote,
            token_out=base,
            amount_in=route.amount_in,
            amount_out=route.amount_out,
            expected_amount=maximum_amount_in(route.amount_in, slippage),
            execution_price=price,
            allowed_slippage=slippage,
            route=route,
            expires_at=self._expiry(route),
        )
