"""
Transaction execution models and types.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from fractions import Fraction
from typing import Any, Dict, Optional

from ...providers.base import RouteQuote
from ..errors import ConfigError
from ..tokens.models import Token

GWEI = Decimal(10) ** 9


class TradeSide(str, Enum):
    """Direction of a trade relative to the base token."""
    BUY = "BUY"
    SELL = "SELL"


@dataclass(frozen=True)
class GasOverride:
    """
    Gas parameters for a single submission.

    Legacy ({gas_price}) and fee-market ({max_fee_per_gas,
    max_priority_fee_per_gas}) are mutually exclusive; exactly one of the two
    shapes is populated.
    """
    gas_limit: int
    gas_price: Optional[int] = None                     # wei, legacy
    max_fee_per_gas: Optional[int] = None               # wei, EIP-1559
    max_priority_fee_per_gas: Optional[int] = None      # wei, EIP-1559

    def __post_init__(self):
        legacy = self.gas_price is not None
        fee_market = self.max_fee_per_gas is not None or self.max_priority_fee_per_gas is not None
        if legacy and fee_market:
            raise ConfigError("Gas override cannot mix gasPrice with fee-market parameters")
        if not legacy and not fee_market:
            raise ConfigError("Gas override needs either gasPrice or maxFeePerGas/maxPriorityFeePerGas")
        if fee_market and (self.max_fee_per_gas is None or self.max_priority_fee_per_gas is None):
            raise ConfigError("maxFeePerGas and maxPriorityFeePerGas must be supplied together")
        if self.gas_limit <= 0:
            raise ConfigError(f"Gas limit must be positive, got {self.gas_limit}")

    @property
    def is_fee_market(self) -> bool:
        return self.max_fee_per_gas is not None

    @classmethod
    def legacy(cls, gas_price_gwei: Decimal | float | str, gas_limit: int) -> "GasOverride":
        """Legacy override from a gwei price; rounded half-up to integer wei."""
        try:
            wei = (Decimal(str(gas_price_gwei)) * GWEI).quantize(Decimal(1), rounding=ROUND_HALF_UP)
        except InvalidOperation as exc:
            raise ConfigError(f"Malformed gas price: {gas_price_gwei!r}") from exc
        if wei < 0:
            raise ConfigError(f"Gas price must not be negative, got {gas_price_gwei}")
        return cls(gas_limit=int(gas_limit), gas_price=int(wei))

    @classmethod
    def fee_market(cls, max_fee_per_gas: int, max_priority_fee_per_gas: int, gas_limit: int) -> "GasOverride":
        return cls(
            gas_limit=int(gas_limit),
            max_fee_per_gas=int(max_fee_per_gas),
            max_priority_fee_per_gas=int(max_priority_fee_per_gas),
        )

    @classmethod
    def select(
        cls,
        gas_limit: int,
        gas_price_gwei: Decimal | float | str | None = None,
        max_fee_per_gas: Optional[int] = None,
        max_priority_fee_per_gas: Optional[int] = None,
    ) -> "GasOverride":
        """Fee-market parameters win verbatim when supplied; otherwise legacy."""
        if max_fee_per_gas is not None or max_priority_fee_per_gas is not None:
            if max_fee_per_gas is None or max_priority_fee_per_gas is None:
                raise ConfigError("maxFeePerGas and maxPriorityFeePerGas must be supplied together")
            return cls.fee_market(max_fee_per_gas, max_priority_fee_per_gas, gas_limit)
        if gas_price_gwei is None:
            raise ConfigError("No gas price available for a legacy transaction")
        return cls.legacy(gas_price_gwei, gas_limit)

    def to_tx_fields(self) -> Dict[str, int]:
        fields: Dict[str, int] = {"gas": self.gas_limit}
        if self.is_fee_market:
            fields["type"] = 2
            fields["maxFeePerGas"] = self.max_fee_per_gas
            fields["maxPriorityFeePerGas"] = self.max_priority_fee_per_gas
        else:
            fields["gasPrice"] = self.gas_price
        return fields


@dataclass(frozen=True)
class TransactionHandle:
    """A transaction accepted into the pool. Not necessarily mined."""
    hash: str
    nonce: int
    from_address: str
    to_address: str
    raw: str
    chain_id: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hash": self.hash,
            "nonce": self.nonce,
            "from": self.from_address,
            "to": self.to_address,
            "raw": self.raw,
            "chainId": self.chain_id,
        }


def execution_price(token_in: Token, amount_in: int, token_out: Token, amount_out: int) -> Fraction:
    """Human-unit price of the trade: token_out received per token_in spent."""
    if amount_in <= 0:
        raise ConfigError("Trade amount must be positive")
    return Fraction(amount_out * 10 ** token_in.decimals, amount_in * 10 ** token_out.decimals)


def invert_price(price: Fraction) -> Fraction:
    """Exact reciprocal; invert_price(invert_price(x)) == x."""
    if price == 0:
        raise ConfigError("Cannot invert a zero price")
    return 1 / price


def minimum_amount_out(amount_out: int, slippage: Fraction) -> int:
    """Floor of amount_out * (1 - slippage)."""
    return math.floor(amount_out * (1 - slippage))


def maximum_amount_in(amount_in: int, slippage: Fraction) -> int:
    """Ceil of amount_in * (1 + slippage)."""
    return math.ceil(amount_in * (1 + slippage))


@dataclass(frozen=True)
class TradeIntent:
    """
    A priced trade, produced by a connector's estimate call and consumed by
    the same connector's execute call.

    `base`/`quote`/`amount` describe the request as the caller asked it;
    `token_in`/`token_out`/`amount_in`/`amount_out` describe the swap that
    will actually run. `execution_price` is always token_out per token_in.
    `expected_amount` is the minimum output (SELL) or maximum input (BUY)
    after slippage.
    """
    connector: str
    chain_id: int
    side: TradeSide
    base: Token
    quote: Token
    amount: int
    token_in: Token
    token_out: Token
    amount_in: int
    amount_out: int
    expected_amount: int
    execution_price: Fraction
    allowed_slippage: Fraction
    route: RouteQuote
    expires_at: float
    # priced on the opposite direction; the forward route is re-derived at execution
    route_reversed: bool = False
    created_at: float = field(default_factory=time.time)

    def is_expired(self, now: Optional[float] = None) -> bool:
        return (now if now is not None else time.time()) >= self.expires_at

    @property
    def minimum_out(self) -> int:
        """Least token_out the executed swap may return."""
        if self.side == TradeSide.SELL:
            return self.expected_amount
        return minimum_amount_out(self.amount_out, self.allowed_slippage)
