from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exception_handlers import http_exception_handler, request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.cache import RedisListCache
from app.core.config import settings
from app.core.exceptions import (
    ConflictError,
    DependencyUnavailableError,
    GraphError,
    NotFoundError,
    ValidationFailureError,
)
from app.db.init_db import create_all_tables
from app.db.session import SessionLocal, engine
from app.middleware.request_logging import RequestLoggingMiddleware
from app.modules.follows.api.router import router as follows_router
from app.modules.home_feed.api.router import router as home_feed_router
from app.modules.notifications.api.router import router as notifications_router
from app.modules.notifications.services.notification_events import NotificationDispatcher
from app.modules.posts.api.router import router as posts_router
from app.modules.posts.comments.api.router import router as comments_router
from app.modules.user_management.api.router import router as user_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("app")

async def _start_cache():
    """Connect the notification cache; the service runs without it if Redis is down"""
    if not settings.REDIS_URL:
        logger.info("REDIS_URL is empty, notification cache disabled")
        return None

    cache = RedisListCache(
        url=settings.REDIS_URL,
        max_list_length=settings.NOTIFICATION_CACHE_MAX_LENGTH,
        max_connections=settings.REDIS_MAX_CONNECTIONS,
    )
    try:
        await cache.initialize()
    except DependencyUnavailableError as e:
        logger.warning(f"Notification cache disabled: {e}")
        return None
    return cache

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting server in {settings.ENVIRONMENT} mode")
    if settings.AUTO_CREATE_TABLES:
        await create_all_tables(engine)

    cache = await _start_cache()
    app.state.dispatcher = NotificationDispatcher(SessionLocal, cache=cache)
    try:
        yield
    finally:
        await app.state.dispatcher.aclose()
        if cache is not None:
            await cache.close()
        await engine.dispose()
        logger.info("Shutdown complete")

# Initialize the FastAPI application
app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    exception_handlers={
        RequestValidationError: request_validation_exception_handler,
        HTTPException: http_exception_handler,
    },
    debug=settings.DEBUG,
    description="Follow graph, feed and notifications for a social network",
    version=settings.VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

ERROR_STATUS = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    ValidationFailureError: status.HTTP_400_BAD_REQUEST,
    DependencyUnavailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
}

@app.exception_handler(GraphError)
async def graph_error_handler(request: Request, exc: GraphError):
    status_code = ERROR_STATUS.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    return JSONResponse(status_code=status_code, content={"detail": exc.detail})

# Add middleware
app.add_middleware(RequestLoggingMiddleware)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register API routers
app.include_router(user_router, prefix=f"{settings.API_V1_STR}/users", tags=["users"])
app.include_router(follows_router, prefix=f"{settings.API_V1_STR}/users", tags=["follows"])
app.include_router(home_feed_router, prefix=f"{settings.API_V1_STR}/users", tags=["home feed"])
app.include_router(notifications_router, prefix=f"{settings.API_V1_STR}/users", tags=["notifications"])
app.include_router(posts_router, prefix=settings.API_V1_STR, tags=["posts"])
app.include_router(comments_router, prefix=f"{settings.API_V1_STR}/posts/{{post_id}}/comments", tags=["comments"])

@app.get("/")
async def root():
    return {
        "message": f"Welcome to {settings.PROJECT_NAME}",
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
        "documentation": "/docs" if settings.DEBUG else None,
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)
