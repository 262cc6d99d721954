"""
FastAPI application entry point.
Sets up the API with lifespan events for database initialization.
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from careercompass.config import settings
from careercompass.database import init_db
from careercompass.api.router import api_router
from careercompass.middleware.metrics_middleware import MetricsMiddleware
from careercompass.utils.logging import configure_logging

API_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup/shutdown events.
    Startup configures logging and creates missing tables.
    """
    configure_logging('compass-api', settings.log_level)
    await init_db()
    yield


app = FastAPI(
    title="CareerCompass Embedding API",
    description="Embedding store and similarity search for CareerCompass",
    version=API_VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Metrics middleware (must be after CORS to track all requests)
app.add_middleware(MetricsMiddleware)

app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "CareerCompass Embedding API",
        "version": API_VERSION,
        "environment": settings.environment
    }


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )
