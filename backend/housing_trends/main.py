from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from housing_trends.api.routers import search, notifications
from housing_trends.core.config import settings
from housing_trends.core.database import SessionLocal, init_db
import logging

logging.basicConfig(level=settings.LOG_LEVEL.upper())
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Housing Trends Dashboard API",
    description="API for searching housing market data and managing saved search notifications",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(search.router, prefix="/api/v1/search", tags=["search"])
app.include_router(notifications.router, prefix="/api/v1/notifications", tags=["notifications"])

@app.on_event("startup")
async def startup_event():
    """Initialize services on startup"""
    try:
        if settings.AUTO_CREATE_TABLES:
            init_db()

        logger.info("Application startup completed successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}")
        raise

@app.get("/")
async def root():
    return {"message": "Housing Trends Dashboard API"}

@app.get("/health")
async def health_check():
    """Health check endpoint that verifies the database"""
    health_status = {
        "status": "healthy",
        "services": {}
    }

    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
        health_status["services"]["database"] = "healthy"

    except Exception as e:
        health_status["status"] = "unhealthy"
        health_status["services"]["database"] = "unhealthy"
        health_status["error"] = str(e)

    return health_status
