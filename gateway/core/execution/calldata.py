"""
Contract call construction.

Turns a router's call description into an unsigned EVM transaction dict.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from eth_abi import encode
from eth_utils import to_checksum_address
from eth_utils.abi import collapse_if_tuple, function_abi_to_4byte_selector

from ..errors import ConfigError
from .models import GasOverride


def find_function_abi(abi: Sequence[Mapping[str, Any]], method: str) -> Dict[str, Any]:
    """Look up a function fragment by name in a contract ABI."""
    for fragment in abi:
        if fragment.get("type", "function") == "function" and fragment.get("name") == method:
            return dict(fragment)
    raise ConfigError(f"Method {method!r} not found in router ABI")


def encode_function_call(fn_abi: Mapping[str, Any], args: Sequence[Any]) -> str:
    """4-byte selector + ABI-encoded arguments, as 0x-prefixed hex."""
    inputs = fn_abi.get("inputs", [])
    if len(inputs) != len(args):
        raise ConfigError(
            f"{fn_abi.get('name')} expects {len(inputs)} arguments, got {len(args)}"
        )
    types = [collapse_if_tuple(dict(item)) for item in inputs]
    selector = function_abi_to_4byte_selector(dict(fn_abi))
    return "0x" + (selector + encode(types, list(args))).hex()


@dataclass(frozen=True)
class ContractCall:
    """
    A call against a contract, ready to be combined with a nonce and gas.

    Either `data` (raw calldata) or `fn_abi` + `args` must be set.
    """
    to: str
    data: Optional[str] = None
    fn_abi: Optional[Dict[str, Any]] = None
    args: Tuple[Any, ...] = field(default_factory=tuple)
    value: int = 0

    def calldata(self) -> str:
        if self.data is not None:
            return self.data if self.data.startswith("0x") else f"0x{self.data}"
        if self.fn_abi is None:
            raise ConfigError(f"Call to {self.to} has neither calldata nor a function ABI")
        return encode_function_call(self.fn_abi, self.args)

    def to_transaction(
        self,
        *,
        chain_id: int,
        sender: str,
        nonce: int,
        gas: GasOverride,
    ) -> Dict[str, Any]:
        """Unsigned transaction dict in the shape eth-account signs."""
        tx: Dict[str, Any] = {
            "chainId": chain_id,
            "from": to_checksum_address(sender),
            "to": to_checksum_address(self.to),
            "data": self.calldata(),
            "value": int(self.value),
            "nonce": nonce,
        }
        tx.update(gas.to_tx_fields())
        return tx


def router_call(
    router_address: str,
    router_abi: Sequence[Mapping[str, Any]],
    method: Optional[str],
    args: Sequence[Any],
    value: int = 0,
    to: Optional[str] = None,
    data: Optional[str] = None,
) -> ContractCall:
    """Build a ContractCall from a router's {method, args} or raw calldata."""
    target = to or router_address
    if not target:
        raise ConfigError("No router address configured for this network")
    if data is not None:
        return ContractCall(to=target, data=data, value=value)
    if not method:
        raise ConfigError("Router returned neither calldata nor a method name")
    return ContractCall(
        to=target,
        fn_abi=find_function_abi(router_abi, method),
        args=tuple(args),
        value=value,
    )
