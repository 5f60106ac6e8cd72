"""
Offer Ingestion API - Main Application.

FastAPI application with CORS enabled for frontend communication.
"""

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import __version__

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

# Create FastAPI application
app = FastAPI(
    title="Offer Ingestion API",
    description="Buyer offer ingestion, round results and lot lifecycle for liquidation lots",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Comma-separated list; "*" allows all origins
allowed_origins = [origin.strip() for origin in os.getenv("ALLOWED_ORIGINS", "*").split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status and version.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "offer-ingestion-api"
    }


@app.get("/", tags=["Root"])
def root():
    """
    Root endpoint with API information.
    """
    return {
        "message": "Offer Ingestion API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# Import and include routers
from api.routers import email, invites, lots

app.include_router(email.router, prefix="/api/v1", tags=["Email"])
app.include_router(invites.router, prefix="/api/v1", tags=["Invites"])
app.include_router(lots.router, prefix="/api/v1", tags=["Lots"])
