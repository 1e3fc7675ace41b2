"""MealMap FastAPI Application.

Main entry point for the backend API server. The lifespan builds the one
cache instance for the process, wires it into the services, and runs the
periodic expiry sweep.
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.api import router
from app.config import Settings
from app.models import ErrorCode
from app.services import (
    NamespacedCache,
    NutritionService,
    OSMOverpassService,
    RedisCacheService,
    RestaurantService,
    SearchService,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    datefmt="%H:%M:%S",
)

logger = logging.getLogger(__name__)

settings = Settings.from_env()


async def sweep_periodically(cache: NamespacedCache, interval_seconds: float) -> None:
    """Remove expired cache entries every ``interval_seconds`` until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        cache.invalidate_expired()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    cache = NamespacedCache(settings.cache_namespaces())
    store = RedisCacheService(settings.redis_url) if settings.redis_url else None
    osm = OSMOverpassService(settings.overpass_urls, timeout=settings.http_timeout)
    restaurant_service = RestaurantService(cache, osm, store=store)

    app.state.cache = cache
    app.state.store = store
    app.state.restaurant_service = restaurant_service
    app.state.nutrition_service = NutritionService(
        cache, settings.nutrition_data_dir, store=store
    )
    app.state.search_service = SearchService(cache, restaurant_service, store=store)

    sweeper = asyncio.create_task(
        sweep_periodically(cache, settings.sweep_interval_seconds)
    )
    logger.info(
        f"MealMap started: namespaces={cache.namespaces}, "
        f"second tier={'redis' if store else 'off'}"
    )
    yield
    # Shutdown
    sweeper.cancel()
    try:
        await sweeper
    except asyncio.CancelledError:
        pass
    if store is not None:
        await store.disconnect()


app = FastAPI(
    title="MealMap API",
    description="Nearby restaurants and nutrition data",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Global exception handlers
@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError):
    """Handle Pydantic validation errors."""
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "error": {
                "code": ErrorCode.VALIDATION_ERROR.value,
                "message": str(exc),
                "user_message": "Invalid request format. Please check your input.",
            },
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors."""
    logger.exception("Unhandled error")
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": {
                "code": ErrorCode.API_ERROR.value,
                "message": str(exc),
                "user_message": "Something went wrong. Please try again.",
            },
        },
    )


# Include API routes
app.include_router(router, prefix="/api")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
