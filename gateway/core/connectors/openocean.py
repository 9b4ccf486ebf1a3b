"""OpenOcean aggregator connector."""

from typing import Any, Iterable, Mapping

from .base import Connector


class OpenOceanConnector(Connector):
    """
    Tokens come from the chain's token list. Buys are priced by inverting the
    opposite sell; the aggregator returns raw calldata and its own target.
    """

    variant = "openocean"

    def _token_entries(self) -> Iterable[Mapping[str, Any]]:
        return self.chain.stored_token_list
