"""
Chain capability.

A Chain wraps one (chain, network) pair: RPC access, the wallets the gateway
may sign for and the chain's token list. Connectors and the broadcaster only
ever talk to a chain through this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, List

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import to_hex

from ..config import settings
from ..core.chain_types import ChainIdentity
from ..core.errors import ConfigError
from ..core.execution.nonce_manager import NonceManager


class Signer(ABC):
    """Signs transactions for a single address."""

    address: str

    @abstractmethod
    def sign_transaction(self, tx: Dict[str, Any]) -> str:
        """Sign an unsigned transaction dict; returns the raw transaction as 0x-hex."""
        pass


class LocalSigner(Signer):
    """Signer backed by an in-process private key."""

    def __init__(self, account: LocalAccount):
        self._account = account
        self.address = account.address

    @classmethod
    def from_key(cls, private_key: str) -> "LocalSigner":
        try:
            return cls(Account.from_key(private_key))
        except (ValueError, TypeError) as exc:
            raise ConfigError("Malformed wallet private key") from exc

    def sign_transaction(self, tx: Dict[str, Any]) -> str:
        # Sender is derived from the key
        unsigned = {k: v for k, v in tx.items() if k != "from"}
        signed = self._account.sign_transaction(unsigned)
        return to_hex(signed.raw_transaction)


class Chain(ABC):
    """Base interface for a blockchain network the gateway trades on."""

    def __init__(self, identity: ChainIdentity, gas_price_token: str):
        self.identity = identity
        self.gas_price_token = gas_price_token
        self.nonce_manager = NonceManager(
            self.get_transaction_count,
            resync_interval_seconds=settings.nonce_resync_interval_seconds,
        )

    @property
    def chain(self) -> str:
        return self.identity.chain

    @property
    def network(self) -> str:
        return self.identity.network

    @property
    def chain_id(self) -> int:
        return self.identity.chain_id

    @abstractmethod
    def ready(self) -> bool:
        pass

    @abstractmethod
    async def init(self) -> None:
        """Connect and load the token list. Idempotent."""
        pass

    @property
    @abstractmethod
    def stored_token_list(self) -> List[Dict[str, Any]]:
        """Raw token-list entries loaded by init()."""
        pass

    @abstractmethod
    def get_signer(self, address: str) -> Signer:
        pass

    @abstractmethod
    async def get_transaction_count(self, address: str) -> int:
        """Confirmed transaction count of `address`."""
        pass

    @abstractmethod
    async def send_raw_transaction(self, raw: str) -> str:
        """Submit a signed transaction; returns its hash once the pool accepted it."""
        pass

    @abstractmethod
    async def gas_price(self) -> Decimal:
        """Current gas price in gwei."""
        pass

    async def close(self) -> None:
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.identity})"
