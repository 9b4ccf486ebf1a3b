"""
Chain identification types and utilities.

A chain instance is identified by its family name ("ethereum", "polygon",
"binance-smart-chain", ...), the network inside that family ("mainnet",
"goerli", ...) and the numeric EVM chain id. The triple never changes once a
chain object is built, and every connector instance is keyed by it plus the
connector name.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

# Aliases accepted at the HTTP boundary -> canonical chain family name
CHAIN_ALIASES: Dict[str, str] = {
    "eth": "ethereum",
    "bsc": "binance-smart-chain",
    "bnb": "binance-smart-chain",
    "avax": "avalanche",
    "matic": "polygon",
}


@dataclass(frozen=True)
class ChainIdentity:
    """Immutable (chain, network, chain_id) triple."""

    chain: str
    network: str
    chain_id: int

    @property
    def key(self) -> Tuple[str, str]:
        return (self.chain, self.network)

    def __str__(self) -> str:
        return f"{self.chain}:{self.network}({self.chain_id})"


def normalize_chain_name(chain: str) -> str:
    """
    Convert user input to a canonical chain family name.

    Examples:
        >>> normalize_chain_name("BSC")
        'binance-smart-chain'
        >>> normalize_chain_name(" ethereum ")
        'ethereum'
    """
    chain_lower = chain.lower().strip()
    return CHAIN_ALIASES.get(chain_lower, chain_lower)


def connector_key(connector: str, chain: str, network: str) -> Tuple[str, str, str]:
    """Cache key for a connector instance."""
    return (connector.lower().strip(), normalize_chain_name(chain), network.lower().strip())


__all__ = [
    "CHAIN_ALIASES",
    "ChainIdentity",
    "normalize_chain_name",
    "connector_key",
]
