import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel

from coverage_server.config.settings import settings
from coverage_server.core.dependencies import get_llm_service
from coverage_server.services.llm_service import LLMService

router = APIRouter(prefix="/health", tags=["health"])

STARTED_AT = time.monotonic()


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    uptime: float
    version: str
    environment: str
    config: Dict[str, Any]
    features: Dict[str, Any]


@router.get("", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def health_check(request: Request, llm_service: LLMService = Depends(get_llm_service)):
    """Health check endpoint"""
    plugins: List[str] = getattr(request.app.state, "plugins", [])
    return HealthResponse(
        status="healthy",
        timestamp=datetime.utcnow(),
        uptime=round(time.monotonic() - STARTED_AT, 3),
        version=settings.version,
        environment=settings.environment,
        config={
            "projectRoot": settings.project_root,
            "port": settings.port,
            "logLevel": settings.log_level,
        },
        features={
            "aiTests": llm_service.is_configured,
            "pluginsLoaded": len(plugins),
        },
    )


@router.get("/readiness")
async def readiness_check(llm_service: LLMService = Depends(get_llm_service)):
    """Readiness check endpoint"""
    checks = {
        "projectRoot": "ok" if Path(settings.project_root).is_dir() else "missing",
        "llm": "ok" if llm_service.is_configured else "not_configured",
    }

    return {
        "status": "ready" if checks["projectRoot"] == "ok" else "not_ready",
        "checks": checks,
        "timestamp": datetime.utcnow(),
    }
