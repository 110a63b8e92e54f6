"""
Coffee World API

FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from fastapi import Depends, FastAPI

from coffeeworld import __version__
from coffeeworld.exceptions import CoffeeWorldException
from .schemas import HealthResponse
from .routes import auth, checkins, reviews, shops
from .middleware import (
    setup_cors,
    setup_rate_limiting,
    setup_logging,
    setup_exception_handlers,
    RateLimitConfig,
    LoggingConfig,
    get_cors_config,
)
from .dependencies import (
    get_settings,
    get_service_container,
    init_services,
    ServiceContainer,
    Settings,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# Application Lifespan
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Startup builds the service container, touches the stores so tables
    exist and seeds demo data when enabled. Shutdown closes the
    verifier's HTTP client and the database engine.
    """
    settings = app.state.settings
    logger.info(f"Starting Coffee World in {settings.environment} mode")

    services = init_services(settings)
    app.state.services = services

    try:
        _ = services.checkin_service
        _ = services.review_service
        _ = services.verifier

        if settings.seed_demo_data:
            logger.info("Seeding demo data...")
            services.seed_demo_data()

        logger.info("Coffee World started successfully")

        yield

    finally:
        logger.info("Shutting down Coffee World...")
        await services.close()
        logger.info("Shutdown complete")


# =============================================================================
# Application Factory
# =============================================================================

def create_app(settings: Settings = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Application settings. If None, loads from environment.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="Coffee World",
        description="Live coffee shop crowd levels from World ID verified check-ins.",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # ==========================================================================
    # Middleware (order matters - last added = outermost)
    # ==========================================================================

    # 1. Logging
    setup_logging(
        app,
        config=LoggingConfig(
            enabled=True,
            log_request_body=settings.debug,
        ),
        structured=settings.environment != "development",
    )

    # 2. Exception handling
    setup_exception_handlers(app)

    # 3. Request throttling
    if settings.rate_limit_enabled:
        setup_rate_limiting(
            app,
            config=RateLimitConfig(
                requests_per_minute=settings.rate_limit_requests_per_minute,
                enabled=settings.rate_limit_enabled,
            ),
        )

    # 4. CORS
    setup_cors(app, config=get_cors_config(settings.environment))

    # ==========================================================================
    # Routers
    # ==========================================================================

    api_prefix = "/api/v1"

    app.include_router(auth.router, prefix=api_prefix)
    app.include_router(checkins.router, prefix=api_prefix)
    app.include_router(shops.router, prefix=api_prefix)
    app.include_router(reviews.router, prefix=api_prefix)

    # ==========================================================================
    # Root Routes
    # ==========================================================================

    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Coffee World",
            "version": __version__,
            "status": "running",
            "docs": "/docs" if settings.debug else None,
        }

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    def health_check(
        services: ServiceContainer = Depends(get_service_container),
    ) -> HealthResponse:
        """
        Health check endpoint.

        Reports the check-in store and the verification strategy.
        """
        components = {}
        overall_healthy = True

        try:
            services.checkin_store.count_active("__health__", datetime.now(timezone.utc))
            components["checkin_store"] = "healthy"
        except CoffeeWorldException as e:
            components["checkin_store"] = f"unhealthy: {e.message}"
            overall_healthy = False

        components["verifier"] = services.verifier.name

        return HealthResponse(
            status="healthy" if overall_healthy else "degraded",
            version=__version__,
            components=components,
        )

    return app


# Default application instance
app = create_app()


def main():
    """Run the API server with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "coffeeworld.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug and settings.environment == "development",
    )


if __name__ == "__main__":
    main()
