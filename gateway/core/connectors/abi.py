"""
Router ABI fragments bundled with the connector variants.

Only the functions the connectors call are listed. A deployment whose router
differs can point `router_abi` in the connector config at its own ABI file.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Tuple

from ...config import BASE_DIR
from ..errors import ConfigError

RouterAbi = Tuple[Dict[str, Any], ...]


def _swap(name: str, amount_args: List[str], payable: bool = False) -> Dict[str, Any]:
    inputs = [{"name": arg, "type": "uint256"} for arg in amount_args]
    inputs += [
        {"name": "path", "type": "address[]"},
        {"name": "to", "type": "address"},
        {"name": "deadline", "type": "uint256"},
    ]
    return {
        "type": "function",
        "name": name,
        "stateMutability": "payable" if payable else "nonpayable",
        "inputs": inputs,
        "outputs": [{"name": "amounts", "type": "uint256[]"}],
    }


UNISWAP_V2_ROUTER_ABI: RouterAbi = (
    _swap("swapExactTokensForTokens", ["amountIn", "amountOutMin"]),
    _swap("swapTokensForExactTokens", ["amountOut", "amountInMax"]),
    _swap("swapExactETHForTokens", ["amountOutMin"], payable=True),
    _swap("swapTokensForExactETH", ["amountOut", "amountInMax"]),
    _swap("swapExactTokensForETH", ["amountIn", "amountOutMin"]),
    _swap("swapETHForExactTokens", ["amountOut"], payable=True),
)

# Curve meta-router entry point: executes a route found by the route scanner
CURVE_ROUTER_ABI: RouterAbi = (
    {
        "type": "function",
        "name": "start",
        "stateMutability": "payable",
        "inputs": [
            {"name": "tokenIn", "type": "address"},
            {"name": "amountIn", "type": "uint256"},
            {"name": "minAmountOut", "type": "uint256"},
            {"name": "route", "type": "bytes"},
            {"name": "recipient", "type": "address"},
            {"name": "deadline", "type": "uint256"},
        ],
        "outputs": [{"name": "amountOut", "type": "uint256"}],
    },
)


def load_router_abi(source: str) -> RouterAbi:
    """
    Read a router ABI file: a bare fragment array or a build artifact
    carrying it under "abi". Relative paths resolve against the project root.
    """
    path = Path(source)
    if not path.is_absolute():
        path = BASE_DIR / path
    try:
        data = json.loads(path.read_text())
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Failed to read router ABI {path}: {exc}") from exc

    if isinstance(data, dict):
        data = data.get("abi")
    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise ConfigError(f"Router ABI {path} is not a list of fragments")
    return tuple(data)
