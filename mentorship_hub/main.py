# mentorship_hub/main.py
import logging
from fastapi import FastAPI
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .config import get_settings
from .database import create_db_and_tables, SessionLocal
from .routers import profile_router, discovery_router, mentorship_router, rating_router

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

settings = get_settings()

app = FastAPI(
    title="Campus Mentorship Hub API",
    description="Peer and professional mentorship requests, relationships and ratings for students.",
    version="1.0.0",
)

# Include routers
app.include_router(profile_router.router)
app.include_router(discovery_router.router)
app.include_router(mentorship_router.router)
app.include_router(rating_router.router)

@app.on_event("startup")
async def startup_event():
    """Initialize application on startup"""
    logger.info("Application startup event triggered.")
    try:
        create_db_and_tables()
        logger.info(
            f"Startup sequence completed successfully (official mirror: {settings.OFFICIAL_MENTOR_MIRROR}, "
            f"notifications: {settings.NOTIFICATIONS_ENABLED})."
        )
    except Exception as e:
        logger.critical(f"Critical error during startup: {e}", exc_info=True)

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "database": "ok",
            "official_mentor_mirror": settings.OFFICIAL_MENTOR_MIRROR,
        }
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {e}")
        return {"status": "unhealthy", "error": "database unavailable"}
