"""Router capabilities: pricing and calldata sources behind a connector."""

from .base import BuildParams, RouteCall, RouteQuote, RouteRequest, RouterCapability
from .openocean import OpenOceanRouter

__all__ = [
    "RouterCapability",
    "RouteRequest",
    "RouteQuote",
    "BuildParams",
    "RouteCall",
    "OpenOceanRouter",
]
