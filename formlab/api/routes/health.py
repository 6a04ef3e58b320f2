"""Health endpoint."""

from fastapi import APIRouter, Depends

from formlab.config import settings
from formlab.domains.experiments import ExperimentEngine, get_engine

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(engine: ExperimentEngine = Depends(get_engine)) -> dict:
    from formlab.main import get_uptime

    return {
        "status": "healthy",
        "version": settings.app_version,
        "uptime_seconds": get_uptime(),
        "tests": len(engine.registry),
    }
