# 📄 File: app/main.py
#
# 🧭 Purpose (Layman Explanation):
# The main control center that starts up the KrishiVedha farming API, connects the gatekeeping
# pieces (login checks, request limits, input checks) to the farm, crop and community features,
# and makes sure everything is ready to handle requests from the mobile app.
#
# 🧪 Purpose (Technical Summary):
# FastAPI application factory and entry point. Builds the admission pipeline (sanitizer, rate limiters,
# authenticator, validator, ownership authorizer, error classifier, retry orchestrator), stores it on
# app.state, installs middleware and exception handlers, and registers the routers.
#
# 🔗 Dependencies:
# - FastAPI framework, uvicorn
# - app.shared.config.settings
# - app.shared.core (admission pipeline components)
# - app.shared.infrastructure (document store, image storage)
#
# 🔄 Connected Modules / Calls From:
# - uvicorn server startup
# - Docker container entry point
# - tests (create_application with injected stores and clock)

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Awaitable, Callable, Optional

import uvicorn
from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    register_exception_handlers,
)
from app.api.v1 import API_TAGS
from app.api.v1.health import health_router
from app.api.v1.router import api_v1_router
from app.shared.config.settings import Settings, get_settings
from app.shared.core.authorization import OwnershipAuthorizer, ResourceLoaderRegistry
from app.shared.core.dependencies import AdmissionPipeline
from app.shared.core.error_classifier import ErrorClassifier
from app.shared.core.rate_limiter import (
    BucketStore,
    MemoryBucketStore,
    RedisBucketStore,
    build_rate_limiters,
    monotonic_ms,
)
from app.shared.core.retry import RetryOrchestrator
from app.shared.core.security import Authenticator, TokenService
from app.shared.core.validation import RequestValidator
from app.shared.infrastructure.database import DocumentIdentityStore, DocumentStore, build_document_store
from app.shared.infrastructure.storage import ImageStorage, LocalImageStorage, build_image_storage
from app.shared.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)

# Resource types checked by the ownership authorizer, and where they live
OWNED_RESOURCE_COLLECTIONS = {
    "farm": "farms",
    "crop": "crops",
    "post": "posts",
}


def build_bucket_store(settings: Settings) -> BucketStore:
    if settings.RATE_LIMIT_BACKEND == "redis":
        logger.info("Using Redis rate limit store", redis_url=settings.REDIS_URL)
        return RedisBucketStore.from_url(settings.REDIS_URL)
    return MemoryBucketStore()


def build_pipeline(
    settings: Settings,
    document_store: DocumentStore,
    bucket_store: BucketStore,
    clock: Callable[[], int] = monotonic_ms,
    retry_sleep: Optional[Callable[[float], Awaitable[None]]] = None,
) -> AdmissionPipeline:
    """Wire the admission pipeline components together."""
    authenticator = Authenticator(TokenService(settings), DocumentIdentityStore(document_store))
    registry = ResourceLoaderRegistry.from_store(document_store, OWNED_RESOURCE_COLLECTIONS)
    classifier = ErrorClassifier()

    orchestrator_kwargs = {"sleep": retry_sleep} if retry_sleep is not None else {}
    return AdmissionPipeline(
        settings=settings,
        authenticator=authenticator,
        authorizer=OwnershipAuthorizer(registry),
        limiters=build_rate_limiters(bucket_store, settings.RATE_LIMIT_OVERRIDES, clock=clock),
        validator=RequestValidator(),
        classifier=classifier,
        orchestrator=RetryOrchestrator(classifier, settings.RETRY_POLICY_OVERRIDES, **orchestrator_kwargs),
    )


def create_application(
    settings: Optional[Settings] = None,
    document_store: Optional[DocumentStore] = None,
    image_storage: Optional[ImageStorage] = None,
    bucket_store: Optional[BucketStore] = None,
    clock: Callable[[], int] = monotonic_ms,
    retry_sleep: Optional[Callable[[float], Awaitable[None]]] = None,
) -> FastAPI:
    """
    Application factory function.

    Creates and configures the FastAPI application with its admission
    pipeline, middleware and routers.

    Args:
        settings: Settings to use instead of the environment
        document_store: Document store shared by the routes; defaults from DOCUMENT_STORE_BACKEND
        image_storage: Storage for crop photos; defaults from IMAGE_STORAGE_BACKEND
        bucket_store: Rate limit bucket store; defaults from RATE_LIMIT_BACKEND
        clock: Millisecond clock for rate limit windows
        retry_sleep: Sleep used between retry attempts

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    if document_store is None:
        document_store = build_document_store(settings)
    if image_storage is None:
        image_storage = build_image_storage(
            settings.IMAGE_STORAGE_BACKEND, settings.UPLOAD_DIR, settings.UPLOAD_URL_PREFIX
        )
    if bucket_store is None:
        bucket_store = build_bucket_store(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info(f"🌾 {settings.APP_NAME} starting up", environment=settings.ENVIRONMENT)
        await document_store.initialize()
        yield
        await document_store.close()
        logger.info("✅ Document store closed")
        if isinstance(bucket_store, RedisBucketStore):
            await bucket_store.close()
            logger.info("✅ Redis connections closed")
        logger.info(f"{settings.APP_NAME} shutdown complete")

    app = FastAPI(
        title=settings.APP_NAME,
        description=settings.APP_DESCRIPTION,
        version=settings.APP_VERSION,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        openapi_tags=API_TAGS,
        lifespan=lifespan,
        debug=settings.DEBUG,
    )

    app.state.settings = settings
    app.state.document_store = document_store
    app.state.image_storage = image_storage
    app.state.pipeline = build_pipeline(settings, document_store, bucket_store, clock, retry_sleep)

    # =========================================================================
    # MIDDLEWARE CONFIGURATION
    # =========================================================================

    # Error handling middleware (innermost, catches what the handlers did not)
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware, settings=settings)
    app.add_middleware(RequestLoggingMiddleware)

    # CORS middleware (outermost, answers preflight requests)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "RateLimit-Limit", "RateLimit-Remaining", "RateLimit-Reset", "Retry-After"],
    )

    register_exception_handlers(app)

    # =========================================================================
    # ROUTER REGISTRATION
    # =========================================================================

    app.include_router(health_router, tags=["Health Check"])
    app.include_router(api_v1_router, prefix="/api/v1")

    if isinstance(image_storage, LocalImageStorage):
        app.mount(
            settings.UPLOAD_URL_PREFIX,
            StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False),
            name="uploads",
        )

    @app.get("/", include_in_schema=False)
    async def root() -> dict:
        """Root endpoint with API information."""
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "description": settings.APP_DESCRIPTION,
            "docs_url": "/docs" if settings.DEBUG else None,
            "health_check": "/health",
            "api_base": "/api/v1",
        }

    @app.get("/favicon.ico", include_in_schema=False)
    async def favicon():
        return Response(status_code=204)

    return app


# Create the FastAPI application
app = create_application()


def main():
    """Run the application with uvicorn in development."""
    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD and settings.ENVIRONMENT == "development",
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
