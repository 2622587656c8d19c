import logging
import os
from contextlib import asynccontextmanager
from datetime import timedelta

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .database import Base, engine
from .routes.competitor_research import router as competitor_research_router
from .services.competitor_store import CompetitorStore
from .services.http_client import close_client


# Load environment variables from .env file
load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _stale_after() -> timedelta:
    try:
        minutes = int(os.getenv("RESEARCH_STALE_AFTER_MINUTES", "30"))
    except ValueError:
        minutes = 30
    return timedelta(minutes=minutes)


@asynccontextmanager
async def lifespan(app: FastAPI):

    # Startup
    print("Starting Competitor Intelligence Service")
    print(f"   Firecrawl Key: {' Configured' if os.getenv('FIRECRAWL_API_KEY') else ' Not set (research disabled)'}")
    print(f"   OpenAI Key:    {' Configured' if os.getenv('OPENAI_API_KEY') else ' Not set (research disabled)'}")

    Base.metadata.create_all(bind=engine)
    try:
        reconciled = CompetitorStore().reconcile_stale_jobs(_stale_after())
        print(f"   Stale jobs reconciled: {reconciled}")
    except Exception as exc:
        logger.error("Stale job reconciliation failed: %s", exc)
    print("   Ready to research competitors!")

    yield

    await close_client()
    print("Shutting down Competitor Intelligence Service")


app = FastAPI(
    title="Competitor Intelligence Research Service",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",      # Next.js dev server
        "http://127.0.0.1:3000",      # Alternative localhost
        "http://localhost:3001",      # Alternative port
    ],
    allow_credentials=True,
    allow_methods=["*"],  # Allow all HTTP methods
    allow_headers=["*"],  # Allow all headers
)

app.include_router(competitor_research_router)


@app.get(
    "/",
    summary="API Root",
    description="Welcome endpoint with API information",
    tags=["General"]
)
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Competitor Intelligence Research",
        "version": "0.1.0",
        "description": "Website research and sales battlecards for competitors",
        "docs": "/docs",
        "endpoints": {
            "research": "POST /competitor-research - Start competitor research",
            "status": "GET /competitor-research/{competitor_id} - Research status and intel"
        }
    }


@app.get(
    "/health",
    summary="Global Health Check",
    description="Check if the API server is running",
    tags=["General"]
)
async def health():
    """Global health check endpoint."""
    return {
        "status": "healthy",
        "service": "competitor-intel",
        "version": "0.1.0"
    }


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors."""
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
            "detail": str(exc) if os.getenv("DEBUG", "false").lower() == "true" else "An unexpected error occurred"
        }
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("DEBUG", "true").lower() == "true",
    )
