"""
JSON-RPC backed EVM chain.
"""

from __future__ import annotations

import asyncio
import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx

from ..config import BASE_DIR, settings
from ..core.chain_types import ChainIdentity
from ..core.errors import ConfigError, RpcError
from ..core.gateway_config import ChainConfig, NetworkConfig
from .base import Chain, LocalSigner, Signer

logger = logging.getLogger(__name__)

WEI_PER_GWEI = Decimal(10) ** 9


class EvmChain(Chain):
    """
    EVM network reached over JSON-RPC.

    Wallets come from ``settings.wallet_private_keys``; the token list from a
    local file or an http(s) URL.
    """

    def __init__(
        self,
        chain: str,
        network: str,
        chain_config: ChainConfig,
        network_config: NetworkConfig,
        *,
        private_keys: Optional[List[str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(
            ChainIdentity(chain=chain, network=network, chain_id=network_config.chain_id),
            gas_price_token=chain_config.gas_price_token,
        )
        self.node_url = network_config.node_url
        self.token_list_source = network_config.token_list
        self.manual_gas_price = chain_config.manual_gas_price
        self._client = client or httpx.AsyncClient(timeout=settings.rpc_timeout_seconds)
        self._token_list: List[Dict[str, Any]] = []
        self._ready = False
        self._init_lock = asyncio.Lock()
        self._request_id = 0

        keys = settings.wallet_private_keys if private_keys is None else private_keys
        self._signers: Dict[str, Signer] = {}
        for key in keys:
            signer = LocalSigner.from_key(key)
            self._signers[signer.address.lower()] = signer

    def ready(self) -> bool:
        return self._ready

    async def init(self) -> None:
        if self._ready:
            return
        async with self._init_lock:
            if self._ready:
                return
            remote_chain_id = int(await self._rpc_call("eth_chainId", []), 16)
            if remote_chain_id != self.chain_id:
                raise ConfigError(
                    f"{self.identity}: node at {self.node_url} reports chain id {remote_chain_id}"
                )
            self._token_list = await self._load_token_list()
            self._ready = True
            logger.info(f"{self.identity} ready with {len(self._token_list)} listed tokens")

    async def _load_token_list(self) -> List[Dict[str, Any]]:
        source = self.token_list_source
        if source.startswith(("http://", "https://")):
            try:
                response = await self._client.get(source)
                response.raise_for_status()
                data = response.json()
            except (httpx.HTTPError, ValueError) as exc:
                raise ConfigError(f"Failed to fetch token list {source}: {exc}") from exc
        else:
            path = Path(source)
            if not path.is_absolute():
                path = BASE_DIR / path
            try:
                data = json.loads(path.read_text())
            except (OSError, ValueError) as exc:
                raise ConfigError(f"Failed to read token list {path}: {exc}") from exc

        # Accept both the token-list standard ({"tokens": [...]}) and a bare array
        tokens = data.get("tokens", []) if isinstance(data, dict) else data
        if not isinstance(tokens, list):
            raise ConfigError(f"Token list {source} has no token array")
        return tokens

    @property
    def stored_token_list(self) -> List[Dict[str, Any]]:
        return self._token_list

    def get_signer(self, address: str) -> Signer:
        signer = self._signers.get(address.lower())
        if signer is None:
            raise ConfigError(
                f"No wallet configured for {address}", details={"address": address}
            )
        return signer

    async def _rpc_call(self, method: str, params: List[Any]) -> Any:
        """Make an RPC call to the node."""
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": self._request_id,
        }

        try:
            response = await self._client.post(self.node_url, json=payload)
            response.raise_for_status()
            result = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise RpcError(f"{method} failed: {exc}", method=method) from exc

        if result.get("error"):
            error = result["error"]
            raise RpcError(
                f"RPC error: {error.get('message', error)}",
                code=error.get("code"),
                method=method,
            )

        return result.get("result")

    async def get_transaction_count(self, address: str) -> int:
        result = await self._rpc_call("eth_getTransactionCount", [address, "latest"])
        return int(result, 16)

    async def send_raw_transaction(self, raw: str) -> str:
        return await self._rpc_call("eth_sendRawTransaction", [raw])

    async def gas_price(self) -> Decimal:
        if self.manual_gas_price is not None:
            return self.manual_gas_price
        wei = int(await self._rpc_call("eth_gasPrice", []), 16)
        return Decimal(wei) / WEI_PER_GWEI

    async def close(self) -> None:
        await self._client.aclose()
