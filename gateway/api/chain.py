from fastapi import APIRouter, Depends, Query

from ..core.dispatcher import Gateway, get_gateway
from ..types.requests import NonceRequest
from ..types.responses import NonceResponse, TokensResponse


router = APIRouter(prefix="/chain")


@router.post("/nonce", response_model=NonceResponse)
async def post_nonce(req: NonceRequest, gateway: Gateway = Depends(get_gateway)) -> NonceResponse:
    """Last nonce used by the wallet."""
    return await gateway.nonce(req)


@router.post("/nextNonce", response_model=NonceResponse)
async def post_next_nonce(req: NonceRequest, gateway: Gateway = Depends(get_gateway)) -> NonceResponse:
    """Nonce the next trade from this wallet would use."""
    return await gateway.next_nonce(req)


@router.get("/tokens", response_model=TokensResponse)
async def get_tokens(
    chain: str = Query(description="Chain family"),
    network: str = Query(description="Network within the chain"),
    connector: str = Query(description="Connector whose token list to return"),
    gateway: Gateway = Depends(get_gateway),
) -> TokensResponse:
    return await gateway.tokens(connector, chain, network)
