"""Token metadata types."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from fractions import Fraction
from typing import Any, Dict, Mapping

from ..errors import ConfigError


@dataclass(frozen=True)
class Token:
    """An ERC20-style token on one chain. Address is stored lower-cased."""

    chain_id: int
    address: str
    symbol: str
    name: str
    decimals: int

    def __post_init__(self):
        if self.decimals < 0:
            raise ConfigError(f"Token {self.symbol} has negative decimals")
        object.__setattr__(self, "address", self.address.lower())

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], chain_id: int | None = None) -> "Token":
        """Build from a token-list entry ({chainId, address, symbol, name, decimals})."""
        try:
            return cls(
                chain_id=int(data.get("chainId", chain_id) if chain_id is None else chain_id),
                address=str(data["address"]),
                symbol=str(data["symbol"]),
                name=str(data.get("name") or data["symbol"]),
                decimals=int(data["decimals"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigError(f"Malformed token list entry: {dict(data)!r}") from exc

    def to_raw(self, amount: Decimal | str) -> int:
        """Human amount -> integer smallest units (truncating extra precision)."""
        try:
            exact = Fraction(Decimal(str(amount)))
        except (ArithmeticError, ValueError) as exc:
            raise ConfigError(f"Malformed amount {amount!r} for {self.symbol}") from exc
        # int() truncates toward zero; Fraction keeps every digit of the input
        return int(exact * 10**self.decimals)

    def from_raw(self, raw: int) -> Decimal:
        # String construction is exact regardless of the decimal context
        return Decimal(f"{raw}e-{self.decimals}")

    def format_raw(self, raw: int) -> str:
        """Fixed-point string with exactly `decimals` places, e.g. '0.010000'."""
        whole, fraction = divmod(abs(raw), 10**self.decimals)
        sign = "-" if raw < 0 else ""
        if self.decimals == 0:
            return f"{sign}{whole}"
        return f"{sign}{whole}.{fraction:0{self.decimals}d}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chainId": self.chain_id,
            "address": self.address,
            "symbol": self.symbol,
            "name": self.name,
            "decimals": self.decimals,
        }
