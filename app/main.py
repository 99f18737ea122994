"""Main FastAPI application."""
import logging
from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles
from fastapi.responses import FileResponse, JSONResponse
from contextlib import asynccontextmanager
import os

from app.core.errors import AppError
from app.core.logging import setup_logging
from app.core.middleware import session_gate
from app.db.database import init_db
from app.api import auth, calls, health, interviews
from app.api.webhooks import voice

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    setup_logging()
    await init_db()
    yield


app = FastAPI(
    title="Mock Interview Voice Service",
    description="Voice-driven mock interviews with AI feedback",
    version="0.1.0",
    lifespan=lifespan,
)

app.middleware("http")(session_gate)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Map unhandled application errors to a 500 without leaking details."""
    logger.error(f"[APP] Unhandled {exc.kind.value} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=500, content={"detail": "Server configuration error"})


# Include routers (must be before static file mounting to take precedence)
app.include_router(health.router, tags=["health"])
app.include_router(auth.router, tags=["auth"])
app.include_router(interviews.router, tags=["interviews"])
app.include_router(calls.router, tags=["calls"])
app.include_router(voice.router, prefix="/webhooks", tags=["webhooks"])

# Mount static files (for frontend)
static_dir = os.path.join(os.path.dirname(__file__), "static")
if os.path.exists(static_dir):
    # Mount assets directory at /assets path
    assets_dir = os.path.join(static_dir, "assets")
    if os.path.exists(assets_dir):
        app.mount("/assets", StaticFiles(directory=assets_dir), name="assets")


@app.get("/")
async def root():
    """Serve frontend index.html."""
    index_path = os.path.join(static_dir, "index.html")
    if os.path.exists(index_path):
        return FileResponse(index_path)
    return {
        "message": "Mock Interview Voice Service",
        "version": "0.1.0",
        "frontend": "Frontend not built.",
    }
