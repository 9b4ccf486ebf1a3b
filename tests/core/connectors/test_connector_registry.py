"""
Tests for the connector and chain instance caches.
"""

import pytest

from gateway.chains.registry import ChainRegistry
from gateway.core.connectors.curve import CurveConnector
from gateway.core.connectors.openocean import OpenOceanConnector
from gateway.core.connectors.registry import ConnectorRegistry
from gateway.core.connectors.uniswapish import UniswapishConnector
from gateway.core.errors import ConfigError, UnknownChainError, UnknownConnectorError
from gateway.core.gateway_config import GatewayConfig
from gateway.providers.openocean import OpenOceanRouter

from tests.fakes import FakeChain, FakeRouter


def _network(chain_id: int) -> dict:
    return {"chain_id": chain_id, "node_url": "http://localhost:8545", "token_list": "unused.json"}


CONFIG = GatewayConfig.model_validate({
    "chains": {
        "ethereum": {"gas_price_token": "ETH", "networks": {"mainnet": _network(1)}},
        "polygon": {"gas_price_token": "MATIC", "networks": {"mainnet": _network(137)}},
        "avalanche": {"gas_price_token": "AVAX", "networks": {"avalanche": _network(43114)}},
    },
    "connectors": {
        "uniswap": {
            "variant": "uniswapish",
            "available_networks": {"ethereum": ["mainnet"]},
        },
        "curve": {
            "variant": "curve",
            "token_list": "conf/lists/curve_tokens.json",
            "available_networks": {"polygon": ["mainnet"], "avalanche": ["avalanche"]},
            "secondary": {"chain": "avalanche", "network": "avalanche"},
        },
        "openocean": {
            "variant": "openocean",
            "available_networks": {"ethereum": ["mainnet"], "polygon": ["mainnet"]},
        },
    },
})


def _fake_chain_factory(chain, network, chain_config, network_config):
    return FakeChain(chain, network, network_config.chain_id)


def _registries():
    chains = ChainRegistry(CONFIG, factory=_fake_chain_factory)
    return chains, ConnectorRegistry(CONFIG, chains)


class TestChainRegistry:
    def test_instances_are_cached_per_chain_and_network(self):
        chains, _ = _registries()

        first = chains.get("ethereum", "mainnet")

        assert chains.get("eth", "mainnet") is first
        assert first.chain_id == 1
        assert chains.get("polygon", "mainnet") is not first

    def test_unknown_network_raises(self):
        chains, _ = _registries()

        with pytest.raises(UnknownChainError):
            chains.get("ethereum", "sepolia")


class TestConnectorRegistry:
    def test_openocean_router_is_built_by_default(self):
        _, connectors = _registries()

        connector = connectors.get("openocean", "ethereum", "mainnet")

        assert isinstance(connector, OpenOceanConnector)
        assert isinstance(connector.router, OpenOceanRouter)
        assert connector.router.chain_code == "eth"

    def test_instances_are_cached(self):
        _, connectors = _registries()

        first = connectors.get("openocean", "ethereum", "mainnet")

        assert connectors.get("OpenOcean", "eth", "mainnet") is first
        assert connectors.get("openocean", "polygon", "mainnet") is not first
        assert connectors.instances() == [first, connectors.get("openocean", "polygon", "mainnet")]

    def test_connector_shares_the_chain_instance(self):
        chains, connectors = _registries()

        connector = connectors.get("openocean", "ethereum", "mainnet")

        assert connector.chain is chains.get("ethereum", "mainnet")

    def test_router_must_be_registered_for_other_variants(self):
        _, connectors = _registries()

        with pytest.raises(ConfigError):
            connectors.get("uniswap", "ethereum", "mainnet")

        router = FakeRouter(raw_calldata=False)
        connectors.register_router("uniswap", lambda config, chain: router)
        connector = connectors.get("uniswap", "ethereum", "mainnet")
        assert isinstance(connector, UniswapishConnector)
        assert connector.router is router

    def test_unknown_connector_and_network(self):
        _, connectors = _registries()

        with pytest.raises(UnknownConnectorError):
            connectors.get("sushiswap", "ethereum", "mainnet")
        with pytest.raises(UnknownConnectorError):
            connectors.get("uniswap", "polygon", "mainnet")

    def test_curve_secondary_is_one_hop(self):
        chains, connectors = _registries()
        connectors.register_router("curve", lambda config, chain: FakeRouter())

        primary = connectors.get("curve", "polygon", "mainnet")

        assert isinstance(primary, CurveConnector)
        assert primary.secondary is not None
        assert primary.secondary.chain is chains.get("avalanche", "avalanche")
        assert primary.secondary.secondary is None
        # The paired network itself gets no secondary
        assert connectors.get("curve", "avalanche", "avalanche").secondary is None


class ClosingRouter(FakeRouter):
    def __init__(self):
        super().__init__()
        self.closed = 0

    async def close(self) -> None:
        self.closed += 1


@pytest.mark.asyncio
async def test_close_releases_primary_and_secondary_routers():
    _, connectors = _registries()
    routers = []

    def factory(config, chain):
        router = ClosingRouter()
        routers.append(router)
        return router

    connectors.register_router("curve", factory)
    primary = connectors.get("curve", "polygon", "mainnet")

    await connectors.close()

    assert primary.router.closed == 1
    assert primary.secondary.router.closed == 1
    assert len(routers) == 2
    assert connectors.instances() == []
