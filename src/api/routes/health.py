"""Liveness and readiness probes."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from src.api.deps import get_context
from src.app_shell.context import ServiceContext
from src.core.ports.storage import StorageError

router = APIRouter()


@router.get("/health")
def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok", "service": "odc-video-service"}


@router.get("/health/ready")
def readiness(ctx: ServiceContext = Depends(get_context)) -> Any:
    """Ready when the object store answers a listing of the public prefix."""
    try:
        ctx.store.list(ctx.namespaces.public_prefix)
    except StorageError as e:
        return JSONResponse(status_code=503, content={"status": "unavailable", "detail": str(e)})
    return {"status": "ok", "backend": ctx.rules.storage.backend}
