"""
FastAPI application.

Entry point: uvicorn api_gateway.main:app
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.config import settings
from shared.logging import get_logger
from api_gateway.routes import stitch

logger = get_logger(__name__)

app = FastAPI(title="Clip Stitcher", version="1.0.0")

if settings.frontend_url:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition", "Content-Length"],
    )

app.include_router(stitch.router, prefix="/api", tags=["stitch"])


@app.get("/health")
async def health():
    """Health check."""
    return {"status": "healthy", "environment": settings.environment}
