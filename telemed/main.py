from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.gzip import GZipMiddleware
from contextlib import asynccontextmanager
from dotenv import load_dotenv
import logging

# Load environment variables as early as possible
load_dotenv()

from .application.errors import LifecycleError
from .core.config import settings
from .database import create_db_and_tables, engine
from .exceptions import http_exception_handler, lifecycle_exception_handler, validation_exception_handler
from .infrastructure.feed.change_feed import ChangeFeed
from .infrastructure.notifications.dispatchers import build_notifier
from .middleware import RateLimitMiddleware, SecurityMiddleware, LoggingMiddleware, ErrorHandlingMiddleware
from .routers import appointments_router, doctors_router, notifications_router, users_router, waiting_room_router
from .utils import utcnow

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"Starting {settings.APP_NAME}...")
    app.state.db_init_ok = True
    app.state.db_init_error = None
    try:
        create_db_and_tables()
        logger.info("Database initialized successfully")
    except Exception as e:
        # Do not crash the app; report via health endpoint
        app.state.db_init_ok = False
        app.state.db_init_error = str(e)
        logger.exception("Database initialization failed")
    app.state.change_feed = ChangeFeed(settings.FEED_QUEUE_SIZE)
    app.state.notifier = build_notifier(engine, settings)
    yield
    # Shutdown
    app.state.change_feed.close_all()
    logger.info(f"Shutting down {settings.APP_NAME}...")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    docs_url=("/docs" if settings.DOCS_ENABLED else None),
    redoc_url=("/redoc" if settings.DOCS_ENABLED else None),
    openapi_url=("/openapi.json" if settings.DOCS_ENABLED else None)
)

app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(LifecycleError, lifecycle_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)

app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(SecurityMiddleware)
app.add_middleware(RateLimitMiddleware)

# GZip compression
app.add_middleware(GZipMiddleware, minimum_size=settings.GZIP_MIN_SIZE)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.allowed_methods_list,
    allow_headers=settings.allowed_headers_list,
)

app.include_router(users_router.router)
app.include_router(doctors_router.router)
app.include_router(appointments_router.router)
app.include_router(waiting_room_router.router)
app.include_router(notifications_router.router)


@app.get("/health")
def health_check():
    feed = getattr(app.state, "change_feed", None)
    return {
        "status": "healthy" if getattr(app.state, "db_init_ok", True) else "degraded",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": utcnow().isoformat(),
        "database": {
            "ok": getattr(app.state, "db_init_ok", True),
            "error": getattr(app.state, "db_init_error", None)
        },
        "waiting_room_streams": feed.subscriber_count if feed else 0,
        "push_notifications": settings.PUSH_NOTIFICATIONS_ENABLED and settings.firebase_configured,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("telemed.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)
