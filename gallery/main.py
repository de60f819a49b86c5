from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, PlainTextResponse
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
import logging

from gallery.config import settings
from gallery.routes import images
from gallery.services.gallery_service import close_gallery_service, get_gallery_service
from gallery.services.scheduler import scheduler, start_scheduler, shutdown_scheduler

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "static"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager
    
    - Startup: check required settings, start the session sweep
    - Shutdown: stop the scheduler and close the RPC client
    """
    missing = settings.missing_required()
    if missing:
        raise RuntimeError(f"Missing required settings: {', '.join(missing)}")

    logger.info("=" * 60)
    logger.info("🚀 Starting Arkiv Gallery...")
    logger.info("   RPC: %s", settings.RPC_URL)
    logger.info("   Owner: %s", settings.ACCOUNT_ADR)
    logger.info("   Pagination mode: %s", settings.PAGINATION_MODE)
    start_scheduler()
    logger.info("=" * 60)
    
    yield  # Application runs here
    
    logger.info("👋 Shutting down Arkiv Gallery...")
    shutdown_scheduler()
    await close_gallery_service()


app = FastAPI(
    title="Arkiv Gallery API",
    description="Paginated, searchable view over images stored on Arkiv",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(images.router, prefix="/api", tags=["Images"])


@app.get("/", include_in_schema=False)
@app.get("/index.html", include_in_schema=False)
async def index():
    """Gallery viewer page"""
    page = STATIC_DIR / "index.html"
    if not page.is_file():
        return PlainTextResponse("Not found", status_code=404)
    return FileResponse(page, media_type="text/html")


@app.get("/health")
@app.head("/health")
async def health_check():
    """
    Health check with scheduler and cache status
    """
    jobs_info = []
    if scheduler.running:
        for job in scheduler.get_jobs():
            jobs_info.append({
                "id": job.id,
                "name": job.name,
                "next_run": job.next_run_time.isoformat() if job.next_run_time else None
            })

    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "scheduler": {
            "running": scheduler.running,
            "job_count": len(jobs_info),
            "jobs": jobs_info
        },
        "gallery": get_gallery_service().stats()
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "gallery.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.ENVIRONMENT == "development"
    )
