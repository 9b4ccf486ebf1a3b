from fastapi import APIRouter, Depends

from ..core.dispatcher import Gateway, get_gateway
from ..types.requests import EstimateGasRequest, PriceRequest, TradeRequest
from ..types.responses import EstimateGasResponse, PriceResponse, TradeResponse


router = APIRouter(prefix="/amm")


@router.post("/price", response_model=PriceResponse)
async def post_price(req: PriceRequest, gateway: Gateway = Depends(get_gateway)) -> PriceResponse:
    """Price a BUY or SELL of `amount` base token."""
    return await gateway.price(req)


@router.post("/trade", response_model=TradeResponse)
async def post_trade(req: TradeRequest, gateway: Gateway = Depends(get_gateway)) -> TradeResponse:
    """Price and submit a trade; returns once the transaction is in the pool."""
    return await gateway.trade(req)


@router.post("/estimateGas", response_model=EstimateGasResponse)
async def post_estimate_gas(
    req: EstimateGasRequest, gateway: Gateway = Depends(get_gateway)
) -> EstimateGasResponse:
    return await gateway.estimate_gas(req)
