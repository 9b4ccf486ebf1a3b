"""Async client for the OpenOcean aggregator API (v3)."""

from __future__ import annotations

import logging
from decimal import Decimal
from fractions import Fraction
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from ..config import settings
from ..core.errors import ConfigError, RouterUnavailableError
from .base import BuildParams, RouteCall, RouteQuote, RouteRequest, RouterCapability

logger = logging.getLogger(__name__)

# chain id -> OpenOcean chain code
OPENOCEAN_CHAIN_CODES: Dict[int, str] = {
    1: "eth",
    10: "optimism",
    56: "bsc",
    137: "polygon",
    8453: "base",
    42161: "arbitrum",
    43114: "avax",
}

GasPriceSource = Callable[[], Awaitable[Decimal]]


def _percent(slippage: Fraction) -> str:
    """Fractional slippage as an OpenOcean percent string (1/100 -> '1')."""
    value = Decimal(slippage.numerator * 100) / Decimal(slippage.denominator)
    return format(value.normalize(), "f")


class OpenOceanRouter(RouterCapability):
    """
    Quotes and swap calldata from https://open-api.openocean.finance.

    Amounts go over the wire in human units; the gas price in gwei.
    """

    name = "openocean"

    def __init__(
        self,
        chain_id: int,
        gas_price: GasPriceSource,
        *,
        base_url: Optional[str] = None,
        timeout_s: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        code = OPENOCEAN_CHAIN_CODES.get(chain_id)
        if code is None:
            raise ConfigError(f"OpenOcean does not support chain id {chain_id}")
        self.chain_code = code
        self.base_url = (base_url or settings.openocean_base_url).rstrip("/")
        self.timeout_s = timeout_s or settings.router_timeout_seconds
        self._gas_price = gas_price
        self._transport = transport

    async def _get(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        path = f"/v3/{self.chain_code}/{endpoint}"
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout_s, transport=self._transport
            ) as client:
                response = await client.get(path, params=params)
                response.raise_for_status()
                return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise RouterUnavailableError(
                f"OpenOcean {endpoint} failed: {exc}",
                details={"endpoint": endpoint, "chain": self.chain_code},
            ) from exc

    @staticmethod
    def _data(body: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """The payload of a successful response, or None when no trade exists."""
        if body.get("code") != 200:
            logger.info(f"OpenOcean returned code {body.get('code')}: {body.get('error') or body.get('message')}")
            return None
        data = body.get("data") or None
        if data is None or int(data.get("outAmount") or 0) <= 0:
            return None
        return data

    async def quote(self, request: RouteRequest) -> Optional[RouteQuote]:
        if request.exact_out:
            raise ConfigError("OpenOcean only quotes exact-in swaps")

        gas_price = await self._gas_price()
        params = {
            "inTokenAddress": request.token_in.address,
            "outTokenAddress": request.token_out.address,
            "amount": request.token_in.format_raw(request.amount),
            "gasPrice": format(gas_price, "f"),
            "slippage": _percent(request.slippage),
        }
        logger.info(
            f"Fetching OpenOcean quote for {request.token_in.symbol}-{request.token_out.symbol} on {self.chain_code}"
        )
        data = self._data(await self._get("quote", params))
        if data is None:
            return None

        return RouteQuote(
            token_in=request.token_in,
            token_out=request.token_out,
            amount_in=request.amount,
            amount_out=int(data["outAmount"]),
            route={"gasPrice": params["gasPrice"], "estimatedGas": data.get("estimatedGas")},
        )

    async def build(self, quote: RouteQuote, params: BuildParams) -> RouteCall:
        gas_price = (quote.route or {}).get("gasPrice") or format(await self._gas_price(), "f")
        body = await self._get(
            "swap_quote",
            {
                "inTokenAddress": quote.token_in.address,
                "outTokenAddress": quote.token_out.address,
                "amount": quote.token_in.format_raw(quote.amount_in),
                "gasPrice": gas_price,
                "slippage": _percent(params.slippage),
                "account": params.recipient,
            },
        )
        data = self._data(body)
        if data is None or not data.get("data"):
            # Route vanished between quote and build
            return RouteCall(amount_out=0)

        return RouteCall(
            to=data["to"],
            data=data["data"],
            value=int(data.get("value") or 0),
            amount_out=int(data["outAmount"]),
        )
