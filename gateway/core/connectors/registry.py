"""
Connector instance cache.

Connectors are created on first use per (connector, chain, network) and
kept for the process lifetime. The variant class comes from the connector's
config; the router capability from a factory registered per connector name
(OpenOcean ships one, other routers are registered by the embedding app).
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Tuple, Type

from ...chains.base import Chain
from ...chains.registry import ChainRegistry
from ...providers.base import RouterCapability
from ...providers.openocean import OpenOceanRouter
from ..chain_types import connector_key, normalize_chain_name
from ..errors import ConfigError, UnknownConnectorError
from ..gateway_config import ConnectorConfig, GatewayConfig
from .base import Connector
from .curve import CurveConnector
from .openocean import OpenOceanConnector
from .uniswapish import UniswapishConnector

logger = logging.getLogger(__name__)

CONNECTOR_VARIANTS: Dict[str, Type[Connector]] = {
    "uniswapish": UniswapishConnector,
    "curve": CurveConnector,
    "openocean": OpenOceanConnector,
}

RouterFactory = Callable[[ConnectorConfig, Chain], RouterCapability]


def _openocean_factory(config: ConnectorConfig, chain: Chain) -> RouterCapability:
    return OpenOceanRouter(chain.chain_id, chain.gas_price)


class ConnectorRegistry:
    """Create-if-absent cache of Connector instances."""

    def __init__(self, config: GatewayConfig, chains: ChainRegistry):
        self.config = config
        self.chains = chains
        self._connectors: Dict[Tuple[str, str, str], Connector] = {}
        self._router_factories: Dict[str, RouterFactory] = {}
        self._variant_router_factories: Dict[str, RouterFactory] = {"openocean": _openocean_factory}

    def register_router(self, connector: str, factory: RouterFactory) -> None:
        """Register the router capability used by `connector` on every network."""
        self._router_factories[connector.lower().strip()] = factory

    def _router_for(self, name: str, config: ConnectorConfig, chain: Chain) -> RouterCapability:
        factory = self._router_factories.get(name) or self._variant_router_factories.get(config.variant)
        if factory is None:
            raise ConfigError(f"No router capability registered for connector {name}")
        return factory(config, chain)

    def _build(
        self,
        name: str,
        config: ConnectorConfig,
        chain: str,
        network: str,
        with_secondary: bool = True,
    ) -> Connector:
        if not config.supports(chain, network):
            raise UnknownConnectorError(
                f"Connector {name} is not available on {chain}:{network}",
                details={"connector": name, "chain": chain, "network": network},
            )
        chain_instance = self.chains.get(chain, network)

        secondary: Optional[Connector] = None
        if with_secondary and config.secondary is not None:
            secondary_chain = normalize_chain_name(config.secondary.chain)
            if (secondary_chain, config.secondary.network) != (chain, network):
                secondary = self._build(
                    name, config, secondary_chain, config.secondary.network, with_secondary=False
                )

        connector_class = CONNECTOR_VARIANTS[config.variant]
        return connector_class(
            name,
            chain_instance,
            config,
            self._router_for(name, config, chain_instance),
            secondary=secondary,
        )

    def get(self, connector: str, chain: str, network: str) -> Connector:
        """
        Get the connector instance for (connector, chain, network).

        Raises:
            UnknownConnectorError: not configured, or not available on that network
            UnknownChainError: the chain/network is not configured
            ConfigError: no router capability for the connector
        """
        key = connector_key(connector, chain, network)
        instance = self._connectors.get(key)
        if instance is None:
            name, chain, network = key
            instance = self._build(name, self.config.connector(name), chain, network)
            self._connectors[key] = instance
            logger.info(f"Created connector {instance!r}")
        return instance

    def instances(self) -> List[Connector]:
        return list(self._connectors.values())

    async def close(self) -> None:
        for connector in self._connectors.values():
            await connector.router.close()
            # Secondaries are built per primary and never cached
            if connector.secondary is not None:
                await connector.secondary.router.close()
        self._connectors.clear()
