from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .api import amm, chain, health
from .config import settings
from .core.dispatcher import shutdown_gateway
from .core.errors import GatewayError
from .logging_config import setup_logging
from .middleware import RequestLoggingMiddleware

setup_logging()
logger = structlog.stdlib.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await shutdown_gateway()


# Create FastAPI app
app = FastAPI(
    title="AMM Gateway",
    description="Uniform price / trade API over EVM chains and DEX connectors",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    logger.warning(
        "gateway_error",
        error=type(exc).__name__,
        category=exc.category.value,
        message=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(amm.router, tags=["AMM"])
app.include_router(chain.router, tags=["Chain"])


@app.get("/")
async def root():
    """Root endpoint with basic info"""
    return {
        "name": "AMM Gateway",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/healthz",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "gateway.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
