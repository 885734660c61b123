"""
Main application module for the Startup Wallet Service.

This module builds the FastAPI application, wires the wallet store, resolver
and seeder at startup, and sets up CORS, request logging and error handlers.
"""
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional
import time

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .db.schemas import SeedData
from .routes import wallets
from .services.backends import open_document_stores, close_document_stores
from .services.resolver import WalletResolver
from .services.seeder import WalletSeeder
from .services.wallet_store import WalletRecordStore
from .utils.config import settings
from .utils.logger import configure_loggers
from .utils.logger import app_logger as logger
from .utils.seeds import load_seed_data


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging request information."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        logger.info(
            f"Incoming request: {request.method} {request.url.path} "
            f"Client: {request.client.host if request.client else 'unknown'}"
        )
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                f"Request failed: {request.method} {request.url.path} "
                f"Error: {str(e)} "
                f"Duration: {time.time() - start_time:.3f}s"
            )
            raise
        logger.info(
            f"Request completed: {request.method} {request.url.path} "
            f"Status: {response.status_code} "
            f"Duration: {time.time() - start_time:.3f}s"
        )
        return response


def create_app(
    wallet_store: Optional[WalletRecordStore] = None,
    seeds: Optional[SeedData] = None,
    seed_on_startup: Optional[bool] = None,
    default_fallback_enabled: Optional[bool] = None
) -> FastAPI:
    """
    Build the application.

    Args:
        wallet_store: Store to use instead of the configured backends; the
            caller keeps ownership and closes it
        seeds: Seed data instead of settings.SEED_FILE
        seed_on_startup: Overrides settings.SEED_ON_STARTUP
        default_fallback_enabled: Overrides settings.DEFAULT_WALLET_FALLBACK_ENABLED
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_loggers(settings.LOGS_DIR)
        logger.info(f"Starting {settings.PROJECT_NAME} v{settings.VERSION}")

        seed_data = seeds if seeds is not None else load_seed_data()
        owned_backends = []
        store = wallet_store
        if store is None:
            owned_backends = await open_document_stores()
            store = WalletRecordStore(owned_backends)

        app.state.wallet_store = store
        app.state.seeder = WalletSeeder(store, seed_data)
        app.state.resolver = WalletResolver(store, seed_data, default_fallback_enabled=default_fallback_enabled)

        should_seed = settings.SEED_ON_STARTUP if seed_on_startup is None else seed_on_startup
        if should_seed:
            seeded = await app.state.seeder.initialize_known_wallets()
            if not seeded:
                logger.warning("Known wallet seeding was incomplete")

        try:
            yield
        finally:
            logger.info(f"Shutting down {settings.PROJECT_NAME}")
            await app.state.resolver.drain()
            await close_document_stores(owned_backends)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="""
        Startup Wallet Service API

        Key Features:
        - Wallet resolution for startups and users
        - Wallet connect and disconnect
        - Known wallet seeding
        """,
        version=settings.VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(wallets.router, prefix="/api/wallets")

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        """Handle HTTP exceptions with detailed error responses."""
        logger.error(f"HTTP error: {exc.status_code} - {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "code": exc.status_code,
                    "message": exc.detail,
                    "type": "http_error"
                }
            },
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions with sanitized error messages."""
        logger.error(f"Unexpected error: {str(exc)}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": status.HTTP_500_INTERNAL_SERVER_ERROR,
                    "message": "An unexpected error occurred",
                    "type": "internal_error"
                }
            }
        )

    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "documentation": "/docs",
            "health": "/health"
        }

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """Health check endpoint with backend reachability."""
        backends = await request.app.state.wallet_store.health()
        return {
            "status": "healthy" if all(backends.values()) else "degraded",
            "version": settings.VERSION,
            "components": {
                name: {"status": "connected" if ok else "disconnected"}
                for name, ok in backends.items()
            },
            "environment": settings.ENVIRONMENT,
            "timestamp": datetime.now().isoformat()
        }

    return app


app = create_app()

# For local development
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("fundraise.main:app", host="0.0.0.0", port=8000, reload=True)
