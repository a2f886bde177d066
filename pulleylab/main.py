"""FastAPI entry point for the PulleyLab backend (v1.0)."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pulleylab import __version__
from pulleylab.models.settings import settings
from pulleylab.routers import sessions, simulation

app = FastAPI(title="PulleyLab API", version=__version__)

# CORS middleware - must be added before routes
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS or ["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["*"],
    max_age=3600,  # Cache preflight for 1 hour
)

# Stateless stepping, analysis and presets
app.include_router(simulation.router)

# Interactive sessions (frame clock, controls, sandbox editing)
app.include_router(sessions.router)


@app.get("/health", tags=["health"])
async def health() -> dict[str, str]:
    """Basic health-check endpoint."""
    return {"status": "ok", "env": settings.APP_ENV}
