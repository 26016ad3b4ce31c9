"""FastAPI application setup for the surf report service."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api import router as api_router
from .pipeline_manager import shutdown_pipeline


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Release the enhancement pipeline's timers and workers on shutdown."""
    yield
    shutdown_pipeline()


app = FastAPI(title="Surf AI", lifespan=lifespan)

# API routes
app.include_router(api_router, prefix="/v1")
