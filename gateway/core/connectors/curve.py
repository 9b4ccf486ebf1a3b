"""
Route-scanning meta-router connector (Curve).

Tokens come from a static list shipped with the connector, filtered by chain
id. Symbols missing locally resolve through a secondary connector on the
paired chain/network, at most one hop away.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from ...config import BASE_DIR
from ..errors import ConfigError
from ..tokens import Token
from .abi import CURVE_ROUTER_ABI
from .base import Connector

logger = logging.getLogger(__name__)


def load_static_token_list(source: str, chain: str) -> List[Dict[str, Any]]:
    """
    Read a static token list.

    Accepts a per-chain mapping ({"polygon": {"tokens": [...]}}), the
    token-list standard ({"tokens": [...]}) or a bare array.
    """
    path = Path(source)
    if not path.is_absolute():
        path = BASE_DIR / path
    try:
        data = json.loads(path.read_text())
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Failed to read token list {path}: {exc}") from exc

    if isinstance(data, dict) and "tokens" not in data:
        data = data.get(chain, {})
    tokens = data.get("tokens", []) if isinstance(data, dict) else data
    if not isinstance(tokens, list):
        raise ConfigError(f"Token list {path} has no token array for {chain}")
    return tokens


class CurveConnector(Connector):
    """
    Buys are priced by inverting the opposite sell. The router returns either
    raw calldata or a `start` call encoded against the meta-router ABI.
    """

    variant = "curve"
    router_abi = CURVE_ROUTER_ABI

    def _token_entries(self) -> List[Mapping[str, Any]]:
        if not self.config.token_list:
            raise ConfigError(f"{self.name} has no static token_list configured")
        return load_static_token_list(self.config.token_list, self.chain.chain)

    def get_token_by_symbol(self, symbol: str) -> Optional[Token]:
        token = self.tokens.get_by_symbol(symbol)
        if token is not None or self.secondary is None:
            return token

        home = self.config.home_token(self.chain.chain)
        if home is not None and home.upper() == symbol.upper().strip():
            return None

        # The secondary is built without a secondary of its own
        token = self.secondary.get_token_by_symbol(symbol)
        if token is not None:
            logger.debug(f"Resolved {symbol} on {self.secondary.chain.identity} via secondary")
        return token
