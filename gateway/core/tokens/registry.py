"""
Per chain token registry.

Populated once while a connector initializes, then sealed. After sealing
the registry is read-only, so concurrent lookups need no locking.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..errors import ConfigError
from .models import Token

logger = logging.getLogger(__name__)


class TokenRegistry:
    """
    Maps token address (primary key) and symbol (secondary index) to Token.

    Entries whose chain id differs from the registry's chain are skipped, so a
    multi-chain token list can be loaded as-is.
    """

    def __init__(self, chain_id: int):
        self.chain_id = chain_id
        self._by_address: Dict[str, Token] = {}
        self._by_symbol: Dict[str, Token] = {}
        self._sealed = False

    @property
    def sealed(self) -> bool:
        return self._sealed

    def __len__(self) -> int:
        return len(self._by_address)

    def __contains__(self, address: str) -> bool:
        return address.lower() in self._by_address

    def add(self, token: Token) -> bool:
        """Add a token. Returns False when it belongs to another chain."""
        if self._sealed:
            raise ConfigError(f"Token registry for chain {self.chain_id} is sealed")
        if token.chain_id != self.chain_id:
            return False

        self._by_address[token.address] = token
        symbol_key = token.symbol.upper()
        existing = self._by_symbol.get(symbol_key)
        if existing is not None and existing.address != token.address:
            # First listing wins; later duplicates stay reachable by address
            logger.warning(
                f"Duplicate symbol {token.symbol} on chain {self.chain_id}: "
                f"keeping {existing.address}, ignoring {token.address}"
            )
        else:
            self._by_symbol[symbol_key] = token
        return True

    def load(self, entries: Iterable[Mapping[str, Any] | Token]) -> int:
        """Load token-list entries; returns how many were added."""
        added = 0
        for entry in entries:
            token = entry if isinstance(entry, Token) else Token.from_dict(entry)
            if self.add(token):
                added += 1
        logger.debug(f"Loaded {added} tokens for chain {self.chain_id}")
        return added

    def seal(self) -> None:
        self._sealed = True

    def get_by_address(self, address: str) -> Optional[Token]:
        return self._by_address.get(address.lower())

    def get_by_symbol(self, symbol: str) -> Optional[Token]:
        return self._by_symbol.get(symbol.upper().strip())

    def tokens(self) -> List[Token]:
        return list(self._by_address.values())
