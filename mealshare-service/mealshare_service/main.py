"""
FastAPI application for Mealshare Service
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from .config import settings
from .infrastructure.admin_registry import admin_registry
from .infrastructure.clock import utcnow
from .infrastructure.database.connection import storage
from .infrastructure.kafka_producer import kafka_producer
from .api.routes import admin, auth, conversations, notifications, posts, users

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.DEBUG else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info("Starting Mealshare Service...")

    admin_registry.load(settings.ADMIN_REGISTRY_PATH)

    await storage.connect()
    logger.info("Storage connected")

    await kafka_producer.start()

    logger.info(f"Mealshare Service started successfully on port {settings.PORT}")

    yield

    # Shutdown
    logger.info("Shutting down Mealshare Service...")

    await kafka_producer.stop()
    await storage.disconnect()

    logger.info("Mealshare Service shut down successfully")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Neighborhood food sharing - posts, claims, chat and moderation",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(posts.router)
app.include_router(conversations.router)
app.include_router(notifications.router)
app.include_router(admin.router)


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint"""
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "healthy",
        "timestamp": utcnow().isoformat(),
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "healthy",
        "storage": storage.backend,
        "kafka": kafka_producer.producer is not None,
        "admins": len(admin_registry.admins()),
        "timestamp": utcnow().isoformat(),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "mealshare_service.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
