import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from uvicorn.importer import import_from_string

from .api import health, swaps
from .config import settings
from .core.swap import QuoteResolver, SwapCoordinator, create_swap_store
from .logging_config import setup_logging
from .middleware import RequestLoggingMiddleware

logger = logging.getLogger(__name__)


def create_app(coordinator: Optional[SwapCoordinator] = None) -> FastAPI:
    """Build the API around ``coordinator``.

    Without a coordinator only quoting is available; swap endpoints
    answer 503 until a wallet-backed coordinator is supplied.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if coordinator is not None:
            await coordinator.resume_pending()
        else:
            logger.warning("No swap coordinator configured; serving quotes only")
        yield
        if coordinator is not None:
            await coordinator.shutdown()
        else:
            await app.state.resolver.close()

    app = FastAPI(
        title="Swapflow API",
        description="Cross-chain swap lifecycle coordinator",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.coordinator = coordinator
    app.state.resolver = coordinator.resolver if coordinator is not None else QuoteResolver()

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(swaps.router, tags=["Swaps"])

    @app.get("/")
    async def root():
        """Root endpoint with basic info"""
        return {
            "name": "Swapflow API",
            "version": "0.1.0",
            "description": "Cross-chain swap lifecycle coordinator",
            "docs": "/docs",
            "health": "/healthz",
        }

    return app


def build_coordinator() -> Optional[SwapCoordinator]:
    """Coordinator for the configured wallet, or None when no wallet is configured.

    ``settings.wallet_provider`` names a zero-argument factory as
    ``module:attribute``; records go to the store picked by
    ``settings.swap_store_backend``.
    """
    if not settings.wallet_provider:
        return None
    factory = import_from_string(settings.wallet_provider)
    wallet = factory()
    logger.info("Using wallet provider %s", settings.wallet_provider)
    return SwapCoordinator(wallet=wallet, store=create_swap_store())


setup_logging()
app = create_app(build_coordinator())


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "swapflow.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower()
    )
