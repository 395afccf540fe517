import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from talentflow.core.config import settings
from talentflow.core.database import init_db
from talentflow.core.logging_config import setup_logging
from talentflow.api.endpoints import candidates, health, jobs, uploads
from talentflow.services.cv_extraction import CVExtractor
from talentflow.services.fit_scoring import FitScorer
from talentflow.services.persistence import DatabaseCandidateStore
from talentflow.services.upload_queue import UploadQueue

setup_logging(settings.LOG_LEVEL, json_logs=settings.JSON_LOGS)
logger = logging.getLogger(__name__)


def build_upload_queue() -> UploadQueue:
    """Upload queue wired to OpenAI and the database store"""
    return UploadQueue(
        extractor=CVExtractor(),
        scorer=FitScorer(),
        store=DatabaseCandidateStore(),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    """
    # Startup
    logger.info("Starting up TalentFlow Ingestion API...")
    logger.info("Initializing database...")
    init_db()
    logger.info("Database initialized successfully")

    if getattr(app.state, "upload_queue", None) is None:
        app.state.upload_queue = build_upload_queue()
    logger.info("Upload queue ready")

    yield

    # Shutdown: items already processing are left to finish
    queue = app.state.upload_queue
    if queue.pending_count:
        logger.warning(f"Shutting down with {queue.pending_count} upload(s) not processed")
    logger.info("Shutting down TalentFlow Ingestion API...")


# Create FastAPI application
app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    description="CV ingestion queue with AI extraction, portrait cropping and fit scoring",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router)
app.include_router(uploads.router, prefix=settings.API_V1_STR)
app.include_router(jobs.router, prefix=settings.API_V1_STR)
app.include_router(candidates.router, prefix=settings.API_V1_STR)


@app.get("/")
async def root():
    """Root endpoint - API health check"""
    return {
        "message": "TalentFlow Ingestion API",
        "version": "1.0.0",
        "status": "healthy"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,  # Enable auto-reload during development
        log_level="info"
    )
