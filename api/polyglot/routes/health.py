import os
import time

import psutil  # type: ignore[import-untyped]
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter()


def _translation_service(request: Request):
    return getattr(request.app.state, "translation_service", None)


@router.get("/health")
async def health_check(request: Request):
    """
    Health check endpoint that monitors system resources and service status.

    Reports "initializing" until the translation service is wired up and
    "degraded" while the provider circuit breaker is open.
    """
    cpu_percent = psutil.cpu_percent()
    memory = psutil.virtual_memory()
    disk = psutil.disk_usage("/")

    service = _translation_service(request)
    translation_status = "initializing"
    breaker_state = "unknown"
    if service is not None:
        breaker_state = service.caller.state
        translation_status = "degraded" if breaker_state == "open" else "healthy"

    # BUILD_ID is injected via Docker build arg from git commit hash
    build_id = os.getenv("BUILD_ID", "unknown")

    return {
        "status": translation_status,
        "timestamp": int(time.time()),
        "build_id": build_id,
        "system": {
            "cpu_percent": cpu_percent,
            "memory_percent": memory.percent,
            "disk_percent": disk.percent,
        },
        "services": {
            "translation": translation_status,
            "circuit_breaker": breaker_state,
        },
    }


@router.get("/health/ready")
async def readiness_check(request: Request):
    """
    Readiness probe that checks if the service is ready to handle requests.
    """
    if _translation_service(request) is None:
        return JSONResponse(status_code=503, content={"status": "initializing"})
    return {"status": "ready"}


@router.get("/health/live")
async def liveness_check():
    """
    Liveness probe that checks if the service is running.
    """
    return {"status": "alive"}
