"""FastAPI application entry point."""
import logging
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import AppError
from app.database import init_db
from app.api.auth import router as auth_router
from app.api.chat import feedback_router, router as chat_router
from app.api.generation import code_router, game_router, image_router, music_router
from app.api.memory import router as memory_router
from app.api.uploads import router as uploads_router
from app.api.users import router as users_router, subscription_router
from app.api.ws import router as ws_router

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.debug else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount static files for uploads and generated images (local storage fallback)
os.makedirs(settings.upload_storage_path, exist_ok=True)
app.mount("/files", StaticFiles(directory=settings.upload_storage_path), name="files")


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    logger.info(f"Starting up {settings.app_name}...")
    logger.info(f"APP_ENV={settings.app_env} (is_prod={settings.is_prod})")

    # Prod: require provider and identity configuration (fail fast)
    if settings.is_prod and not settings.gemini_api_key:
        raise RuntimeError("GEMINI_API_KEY is required when APP_ENV=prod. Set it in .env or environment.")
    if settings.is_prod and not settings.firebase_project_id:
        raise RuntimeError("FIREBASE_PROJECT_ID is required when APP_ENV=prod. Set it in .env or environment.")
    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY not set. Chat replies will use the fallback text and generation will fail.")
    else:
        logger.info(f"LLM: Gemini (model: {settings.llm_model}, images: {settings.image_model})")
    if not settings.firebase_project_id:
        logger.warning("FIREBASE_PROJECT_ID not set. Every authenticated request will be rejected.")

    if settings.s3_bucket_name:
        logger.info(f"Storage: S3 bucket {settings.s3_bucket_name}")
    else:
        logger.info(f"Storage: local ({settings.upload_storage_path}) served at /files")

    # Initialize database
    try:
        init_db()
        logger.info("Database initialized")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        if settings.is_prod:
            raise

    # Cache and Redis
    from app.services.cache import redis_available
    if redis_available:
        logger.info("Redis available (cache and cross-worker locks)")
    else:
        logger.warning("Redis not available; locks are per-process and caching is off")
    if not settings.cache_enabled:
        logger.info("Cache disabled (CACHE_ENABLED=false)")


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown."""
    logger.info("Shutting down...")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "service": settings.app_name
    }


# Include API routers
app.include_router(auth_router, prefix="/api/auth", tags=["Auth"])
app.include_router(chat_router, prefix="/api/chat", tags=["Chat"])
app.include_router(feedback_router, prefix="/api/feedback", tags=["Chat"])
app.include_router(image_router, prefix="/api/image", tags=["Generation"])
app.include_router(code_router, prefix="/api/code", tags=["Generation"])
app.include_router(game_router, prefix="/api/game", tags=["Generation"])
app.include_router(music_router, prefix="/api/music", tags=["Generation"])
app.include_router(memory_router, prefix="/api/memory", tags=["Memory"])
app.include_router(uploads_router, prefix="/api/upload", tags=["Uploads"])
app.include_router(users_router, prefix="/api/user", tags=["User"])
app.include_router(subscription_router, prefix="/api/subscription", tags=["User"])
app.include_router(ws_router)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Domain errors carry their own status; the message is safe to show."""
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler - never expose stack traces."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "An internal error occurred. Please try again later."}
    )
