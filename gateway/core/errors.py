"""
Error Taxonomy

Typed failures raised by the connector and execution layers.
Every error carries a category, whether the caller may retry, and the
HTTP status the dispatcher should answer with. Nothing in the core
retries on its own; the flags only tell the caller what is safe.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(str, Enum):
    """Categories of gateway errors."""

    NOT_READY = "not_ready"       # Connector or chain not initialized
    ROUTING = "routing"           # No route / route expired
    NONCE = "nonce"               # Explicit nonce already consumed
    BROADCAST = "broadcast"       # Transaction never reached the pool
    CONFIG = "config"             # Malformed configuration or parameters
    VALIDATION = "validation"     # Unknown token, connector, wallet
    SLIPPAGE = "slippage"         # Price outside the caller's limit
    PROVIDER = "provider"         # Router service or RPC node failure


class GatewayError(Exception):
    """Base class for every error the gateway surfaces to its callers."""

    category: ErrorCategory = ErrorCategory.CONFIG
    recoverable: bool = True
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
            "recoverable": self.recoverable,
            "details": self.details,
        }


class NotReadyError(GatewayError):
    """Connector used before initialize() completed. Retry after init."""

    category = ErrorCategory.NOT_READY
    status_code = 503


class NoRouteError(GatewayError):
    """The pricing source reported no viable path for the trade."""

    category = ErrorCategory.ROUTING
    status_code = 404


class StaleRouteError(GatewayError):
    """The quoted route expired or would now execute at a worse price."""

    category = ErrorCategory.ROUTING
    status_code = 409


class StaleNonceError(GatewayError):
    """An explicit nonce is already confirmed on-chain. Re-quote and resubmit."""

    category = ErrorCategory.NONCE
    status_code = 409

    def __init__(self, message: str, address: str, nonce: int, confirmed_nonce: int):
        super().__init__(
            message,
            details={"address": address, "nonce": nonce, "confirmed_nonce": confirmed_nonce},
        )
        self.address = address
        self.nonce = nonce
        self.confirmed_nonce = confirmed_nonce


class BroadcastRejectedError(GatewayError):
    """The transaction never entered the pool; its nonce has been released."""

    category = ErrorCategory.BROADCAST
    status_code = 502

    def __init__(self, message: str, address: Optional[str] = None, nonce: Optional[int] = None):
        super().__init__(message, details={"address": address, "nonce": nonce})
        self.address = address
        self.nonce = nonce


class ConfigError(GatewayError):
    """Malformed slippage, gas or address configuration. Fatal to the call only."""

    category = ErrorCategory.CONFIG
    recoverable = False
    status_code = 400


class UnknownTokenError(GatewayError):
    """A token symbol or address is not in the connector's registry."""

    category = ErrorCategory.VALIDATION
    recoverable = False
    status_code = 404


class UnknownChainError(GatewayError):
    """No chain/network with that name is configured."""

    category = ErrorCategory.VALIDATION
    recoverable = False
    status_code = 404


class UnknownConnectorError(GatewayError):
    """No connector with that name is configured for the chain/network."""

    category = ErrorCategory.VALIDATION
    recoverable = False
    status_code = 404


class PriceLimitError(GatewayError):
    """The quoted price is outside the caller's limit price."""

    category = ErrorCategory.SLIPPAGE
    status_code = 422


class RouterUnavailableError(GatewayError):
    """The external router service failed to answer."""

    category = ErrorCategory.PROVIDER
    status_code = 502


class RpcError(GatewayError):
    """A JSON-RPC call returned an error object or failed in transport."""

    category = ErrorCategory.PROVIDER
    status_code = 502

    def __init__(self, message: str, code: Optional[int] = None, method: Optional[str] = None):
        super().__init__(message, details={"code": code, "method": method})
        self.code = code
        self.method = method


__all__ = [
    "ErrorCategory",
    "GatewayError",
    "NotReadyError",
    "NoRouteError",
    "StaleRouteError",
    "StaleNonceError",
    "BroadcastRejectedError",
    "ConfigError",
    "UnknownTokenError",
    "UnknownChainError",
    "UnknownConnectorError",
    "PriceLimitError",
    "RouterUnavailableError",
    "RpcError",
]
