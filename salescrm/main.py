"""
FastAPI application entry point for the sales CRM API.

Configures logging and CORS, registers the API routers and exposes the ASGI
app for uvicorn:

    uvicorn salescrm.main:app --port 3002
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from salescrm import __version__
from salescrm.api import api_router
from salescrm.core.config import get_settings
from salescrm.core.dependencies import SettingsDep
from salescrm.core.store import create_store
from salescrm.models.enums import Collection

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Log which collection store the service is bound to on startup and
    announce shutdown.
    """
    settings = get_settings()
    store = create_store(settings)
    logger.info(f"Sales CRM API starting with {store.description}")
    for collection in Collection:
        logger.info(f"  /{collection.value}")

    yield

    logger.info("Sales CRM API shutting down")


# Create FastAPI application
app = FastAPI(
    title="Sales CRM API",
    version=__version__,
    description=(
        "Backend for the relationship-manager sales CRM. Serves the RM, "
        "channel partner, meeting, sale and target collections, the RM "
        "record workflows, and KPI analytics for the RM and admin dashboards."
    ),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Registered before the API routers so /health is not taken for a collection name
@app.get("/health")
async def health_check(settings: SettingsDep):
    """
    Health check endpoint for monitoring and load balancer probes.

    Returns:
        Dict with status, server time and the configured store
    """
    return {
        "status": "ok",
        "time": datetime.now().isoformat(),
        "store": create_store(settings).description,
    }


app.include_router(api_router)


# Run with uvicorn when executed directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "salescrm.main:app",
        host="0.0.0.0",
        port=3002,
        reload=True,
    )
