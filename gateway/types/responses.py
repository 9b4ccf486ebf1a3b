from typing import List

from pydantic import BaseModel, ConfigDict, Field


class _Response(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class GasResponse(_Response):
    network: str
    timestamp: int = Field(description="Unix milliseconds when the request started")
    latency: float = Field(description="Seconds spent handling the request")
    gas_price: float = Field(alias="gasPrice", description="Gas price in gwei")
    gas_price_token: str = Field(alias="gasPriceToken")
    gas_limit: int = Field(alias="gasLimit")
    gas_cost: str = Field(alias="gasCost", description="gasPrice * gasLimit in the gas token")


class PriceResponse(GasResponse):
    base: str = Field(description="Base token address")
    quote: str = Field(description="Quote token address")
    amount: str = Field(description="Base amount, human units")
    raw_amount: str = Field(alias="rawAmount", description="Base amount, smallest units")
    expected_amount: str = Field(
        alias="expectedAmount",
        description="Minimum quote received (SELL) or maximum quote spent (BUY)",
    )
    price: str = Field(description="Quote per base")


class TradeResponse(PriceResponse):
    tx_hash: str = Field(alias="txHash")
    nonce: int


class EstimateGasResponse(GasResponse):
    pass


class NonceResponse(_Response):
    nonce: int


class TokenInfo(_Response):
    chain_id: int = Field(alias="chainId")
    address: str
    symbol: str
    name: str
    decimals: int


class TokensResponse(_Response):
    tokens: List[TokenInfo] = Field(default_factory=list)
