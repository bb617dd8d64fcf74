"""Main application entry point."""

import logging
from contextlib import asynccontextmanager

from app.config import get_settings

# Configure logging FIRST, before any other imports
logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s - %(levelname)s - %(message)s",
)

# Reduce noise from third-party libraries (must be set before importing them)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("asyncio").setLevel(logging.WARNING)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from app.api import router
from app.clients import YahooFinanceClient
from app.risk_config import load_risk_settings
from app.services import LogNotifier, TradingBotEngine
from app.storage import create_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    logger.info("Starting FX signal engine...")
    logger.info(f"Symbols: {', '.join(settings.symbols)}")

    client = YahooFinanceClient(
        base_url=settings.yahoo_base_url,
        timeout=settings.request_timeout,
        requests_per_second=settings.requests_per_second,
    )
    store = None

    try:
        store = await create_store(settings)
        risk = load_risk_settings(settings.risk_config_path)

        notifier = LogNotifier()
        engine = TradingBotEngine(
            provider=client,
            store=store,
            notifier=notifier,
            settings=settings,
            risk=risk,
        )
        await engine.init()
        app.state.engine = engine
        app.state.notifier = notifier
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        await client.close()
        if store is not None:
            try:
                await store.close()
            except Exception as cleanup_err:
                logger.warning(f"Error closing store: {cleanup_err}")
        raise  # Re-raise to prevent app from starting in broken state

    yield

    # Shutdown
    logger.info("Shutting down...")
    app.state.engine = None
    app.state.notifier = None
    await client.close()
    try:
        await store.close()
    except Exception as e:
        logger.warning(f"Error closing store: {e}")
    logger.info("Shutdown complete")


# Create FastAPI app with orjson for faster JSON serialization
app = FastAPI(
    title="FX Signal Engine",
    description="CALL/PUT signals for FX binary options from a neural model and TA rules",
    version="0.1.0",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include REST routes
app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "FX Signal Engine",
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


def main():
    """Run the application."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
