"""
DEX Connectors

One polymorphic price / trade contract over several protocol families:
- UniswapishConnector: constant-product routers, native exact-out buys
- CurveConnector: meta-router with secondary-chain symbol resolution
- OpenOceanConnector: aggregator HTTP API

Usage:
    from gateway.core.connectors import ConnectorRegistry

    connector = registry.get("uniswap", "ethereum", "mainnet")
    await connector.initialize()
    intent = await connector.estimate_sell_trade(weth, usdc, amount)
"""

from .base import Connector, parse_fraction
from .curve import CurveConnector
from .openocean import OpenOceanConnector
from .registry import CONNECTOR_VARIANTS, ConnectorRegistry
from .uniswapish import UniswapishConnector

__all__ = [
    "Connector",
    "parse_fraction",
    "UniswapishConnector",
    "CurveConnector",
    "OpenOceanConnector",
    "CONNECTOR_VARIANTS",
    "ConnectorRegistry",
]
