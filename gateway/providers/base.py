from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Any, Optional, Tuple

from ..core.tokens.models import Token


@dataclass(frozen=True)
class RouteRequest:
    """A swap intent handed to a router capability."""

    token_in: Token
    token_out: Token
    amount: int                                 # amount_in, or amount_out when exact_out
    exact_out: bool = False
    max_hops: int = 1
    slippage: Fraction = Fraction(1, 100)


@dataclass(frozen=True)
class RouteQuote:
    """
    Priced route returned by a router.

    `route` is opaque: only the router that produced it may interpret it.
    """

    token_in: Token
    token_out: Token
    amount_in: int
    amount_out: int
    route: Any = None
    expires_at: Optional[float] = None          # unix seconds, None -> connector default


@dataclass(frozen=True)
class BuildParams:
    """Execution parameters a router needs to turn a quote into a call."""

    recipient: str
    slippage: Fraction
    deadline: int                               # unix seconds
    exact_out: bool = False


@dataclass(frozen=True)
class RouteCall:
    """
    Contract call produced by a router.

    Either `method` + `args` (encoded by the connector against its router ABI)
    or raw `data` is populated. `to` defaults to the connector's router address.
    """

    method: Optional[str] = None
    args: Tuple[Any, ...] = field(default_factory=tuple)
    value: int = 0
    to: Optional[str] = None
    data: Optional[str] = None
    amount_out: Optional[int] = None            # re-quoted output, when the router knows it


class RouterCapability(ABC):
    """Base interface for DEX pricing / calldata sources"""

    name: str
    timeout_s: int = 10

    @abstractmethod
    async def quote(self, request: RouteRequest) -> Optional[RouteQuote]:
        """Price a swap. Returns None when no viable route exists."""
        pass

    @abstractmethod
    async def build(self, quote: RouteQuote, params: BuildParams) -> RouteCall:
        """Turn a quote previously returned by this router into a contract call."""
        pass

    async def close(self) -> None:
        """Release network resources, if any."""
        return None
