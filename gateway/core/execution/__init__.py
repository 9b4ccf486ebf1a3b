"""
Transaction Execution Layer

Provides the infrastructure for submitting trade transactions:
- NonceManager: Serializes nonce allocation per address
- TxBroadcaster: Signs, sends and reconciles nonces with the outcome
- ContractCall: Target + calldata, combined with nonce and gas at submit time

Usage:
    from gateway.core.execution import GasOverride, NonceManager, TxBroadcaster

    nonce = await chain.nonce_manager.allocate(wallet.address)
    handle = await broadcaster.submit(wallet, call, GasOverride.legacy(5, 150_000), nonce)
"""

from .models import (
    TradeSide,
    GasOverride,
    TransactionHandle,
    TradeIntent,
    execution_price,
    invert_price,
    minimum_amount_out,
    maximum_amount_in,
)

from .calldata import (
    ContractCall,
    encode_function_call,
    find_function_abi,
    router_call,
)

from .nonce_manager import (
    NonceManager,
    NonceState,
)

from .broadcaster import (
    TxBroadcaster,
)

__all__ = [
    # Models
    "TradeSide",
    "GasOverride",
    "TransactionHandle",
    "TradeIntent",
    "execution_price",
    "invert_price",
    "minimum_amount_out",
    "maximum_amount_in",
    # Calldata
    "ContractCall",
    "encode_function_call",
    "find_function_abi",
    "router_call",
    # Nonce Manager
    "NonceManager",
    "NonceState",
    # Broadcaster
    "TxBroadcaster",
]
