"""
Chain instance cache.

One Chain per (chain, network), created on first use and kept for the
process lifetime.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Tuple

from ..core.chain_types import normalize_chain_name
from ..core.gateway_config import ChainConfig, GatewayConfig, NetworkConfig
from .base import Chain
from .evm import EvmChain

logger = logging.getLogger(__name__)

ChainFactory = Callable[[str, str, ChainConfig, NetworkConfig], Chain]


def _evm_factory(chain: str, network: str, chain_config: ChainConfig, network_config: NetworkConfig) -> Chain:
    return EvmChain(chain, network, chain_config, network_config)


class ChainRegistry:
    """Create-if-absent cache of Chain instances."""

    def __init__(self, config: GatewayConfig, factory: ChainFactory = _evm_factory):
        self.config = config
        self._factory = factory
        self._chains: Dict[Tuple[str, str], Chain] = {}

    def get(self, chain: str, network: str) -> Chain:
        """
        Get the Chain for (chain, network), building it on first use.

        Raises:
            UnknownChainError: the pair is not in the gateway config
        """
        chain = normalize_chain_name(chain)
        key = (chain, network)
        instance = self._chains.get(key)
        if instance is None:
            chain_config, network_config = self.config.network(chain, network)
            instance = self._factory(chain, network, chain_config, network_config)
            self._chains[key] = instance
            logger.debug(f"Created chain instance {instance!r}")
        return instance

    def instances(self) -> List[Chain]:
        return list(self._chains.values())

    async def close(self) -> None:
        for chain in self._chains.values():
            await chain.close()
        self._chains.clear()
