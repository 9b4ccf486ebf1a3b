"""
Gateway YAML configuration.

Chains, their networks and the connectors available on them are declared in
a single YAML file (``conf/gateway.yml`` by default):

    chains:
      ethereum:
        gas_price_token: ETH
        networks:
          mainnet:
            chain_id: 1
            node_url: https://rpc.ankr.com/eth
            token_list: conf/lists/ethereum_mainnet.json
    connectors:
      uniswap:
        variant: uniswapish
        allowed_slippage: "1/100"
        available_networks: {ethereum: [mainnet]}
        contract_addresses: {ethereum: {mainnet: "0x7a25..."}}
"""

from __future__ import annotations

import logging
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Literal, Optional, Tuple

import yaml
from pydantic import BaseModel, Field, ValidationError

from ..config import settings
from .chain_types import normalize_chain_name
from .errors import ConfigError, UnknownChainError, UnknownConnectorError

logger = logging.getLogger(__name__)

ConnectorVariant = Literal["uniswapish", "curve", "openocean"]


class NetworkConfig(BaseModel):
    chain_id: int = Field(gt=0)
    node_url: str
    token_list: str = Field(description="Token list file (relative to the project root) or http(s) URL")


class ChainConfig(BaseModel):
    family: Literal["evm"] = "evm"
    gas_price_token: str
    manual_gas_price: Optional[Decimal] = Field(
        default=None, description="Fixed gas price in gwei; skips eth_gasPrice when set"
    )
    networks: Dict[str, NetworkConfig] = Field(default_factory=dict)


class SecondaryChainConfig(BaseModel):
    chain: str
    network: str


class ConnectorConfig(BaseModel):
    variant: ConnectorVariant
    allowed_slippage: str = "1/100"
    gas_limit_estimate: int = Field(default=150_000, gt=0)
    ttl: int = Field(default=300, gt=0, description="Seconds added to now for router deadlines")
    maximum_hops: int = Field(default=4, ge=1)
    quote_validity_seconds: float = Field(default=60.0, gt=0)
    available_networks: Dict[str, List[str]] = Field(default_factory=dict)
    contract_addresses: Dict[str, Dict[str, str]] = Field(default_factory=dict)
    home_tokens: Dict[str, str] = Field(
        default_factory=dict, description="chain -> symbol resolved locally, never delegated"
    )
    secondary: Optional[SecondaryChainConfig] = None
    token_list: Optional[str] = Field(default=None, description="Static token list (curve)")
    router_abi: Optional[str] = Field(
        default=None, description="ABI file replacing the bundled router fragments"
    )

    def supports(self, chain: str, network: str) -> bool:
        return network in self.available_networks.get(chain, [])

    def router_address(self, chain: str, network: str) -> Optional[str]:
        return self.contract_addresses.get(chain, {}).get(network)

    def home_token(self, chain: str) -> Optional[str]:
        return self.home_tokens.get(chain)


class GatewayConfig(BaseModel):
    chains: Dict[str, ChainConfig] = Field(default_factory=dict)
    connectors: Dict[str, ConnectorConfig] = Field(default_factory=dict)

    def network(self, chain: str, network: str) -> Tuple[ChainConfig, NetworkConfig]:
        chain = normalize_chain_name(chain)
        chain_config = self.chains.get(chain)
        if chain_config is None or network not in chain_config.networks:
            raise UnknownChainError(
                f"Chain {chain}:{network} is not configured",
                details={"chain": chain, "network": network},
            )
        return chain_config, chain_config.networks[network]

    def connector(self, name: str) -> ConnectorConfig:
        config = self.connectors.get(name.lower().strip())
        if config is None:
            raise UnknownConnectorError(
                f"Connector {name} is not configured", details={"connector": name}
            )
        return config


def load_gateway_config(path: Optional[Path] = None) -> GatewayConfig:
    """
    Load and validate the gateway YAML file.

    Raises:
        ConfigError: the file is missing, not YAML, or fails validation
    """
    path = Path(path or settings.config_path)
    try:
        with open(path, "r") as f:
            raw = yaml.safe_load(f) or {}
    except FileNotFoundError as exc:
        raise ConfigError(f"Gateway config not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Gateway config {path} is not valid YAML: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"Gateway config {path} must be a mapping")

    chains = {normalize_chain_name(name): value for name, value in (raw.get("chains") or {}).items()}
    try:
        config = GatewayConfig(chains=chains, connectors=raw.get("connectors") or {})
    except ValidationError as exc:
        raise ConfigError(f"Invalid gateway config {path}: {exc}") from exc

    logger.info(f"Loaded {len(config.chains)} chains and {len(config.connectors)} connectors from {path}")
    return config
