from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..core.execution.models import TradeSide


class NetworkSelector(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    chain: str = Field(description="Chain family, e.g. ethereum, polygon, avalanche")
    network: str = Field(description="Network within the chain, e.g. mainnet")


class ConnectorRequest(NetworkSelector):
    connector: str = Field(description="Connector name as configured, e.g. uniswap, curve, openocean")


class PriceRequest(ConnectorRequest):
    base: str = Field(description="Symbol or address of the base token")
    quote: str = Field(description="Symbol or address of the quote token")
    amount: Decimal = Field(gt=0, description="Amount of base token, in human units")
    side: TradeSide = Field(description="BUY or SELL, relative to the base token")
    allowed_slippage: Optional[str] = Field(
        default=None,
        alias="allowedSlippage",
        description="Slippage override as 'n/d', e.g. '1/100'",
    )


class TradeRequest(PriceRequest):
    address: str = Field(description="Wallet that signs the trade")
    limit_price: Optional[Decimal] = Field(
        default=None,
        alias="limitPrice",
        description="Worst acceptable price in quote per base",
    )
    nonce: Optional[int] = Field(default=None, ge=0, description="Explicit nonce for replacements")
    max_fee_per_gas: Optional[int] = Field(
        default=None, ge=0, alias="maxFeePerGas", description="EIP-1559 max fee in wei"
    )
    max_priority_fee_per_gas: Optional[int] = Field(
        default=None, ge=0, alias="maxPriorityFeePerGas", description="EIP-1559 tip in wei"
    )


class EstimateGasRequest(ConnectorRequest):
    pass


class NonceRequest(NetworkSelector):
    address: str = Field(description="Wallet address")
