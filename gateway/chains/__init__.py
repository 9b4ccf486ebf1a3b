"""Chain capability: RPC access, signers and token lists per (chain, network)."""

from .base import Chain, LocalSigner, Signer
from .evm import EvmChain
from .registry import ChainRegistry

__all__ = ["Chain", "Signer", "LocalSigner", "EvmChain", "ChainRegistry"]
