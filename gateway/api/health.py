from typing import Any, Dict

from fastapi import APIRouter, Depends

from ..core.dispatcher import Gateway, get_gateway

router = APIRouter()


@router.get("/healthz")
async def health_check(gateway: Gateway = Depends(get_gateway)) -> Dict[str, Any]:
    """Configured chains/connectors and which instances are initialized."""
    chains = {
        str(chain.identity): "ready" if chain.ready() else "pending"
        for chain in gateway.chains.instances()
    }
    connectors = {
        f"{connector.name}@{connector.chain.identity}": "ready" if connector.ready() else "pending"
        for connector in gateway.connectors.instances()
    }
    return {
        "status": "healthy",
        "configured_chains": sorted(gateway.config.chains),
        "configured_connectors": sorted(gateway.config.connectors),
        "chains": chains,
        "connectors": connectors,
    }
