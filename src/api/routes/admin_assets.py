"""
Admin asset routes: dashboard list/stats, publish, remove, crash repair.

Every route requires a valid upload credential.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from src.api.deps import get_context, require_principal
from src.api.errors import error_response
from src.api.schemas import (
    AssetListResponse,
    AssetStatus,
    ErrorModel,
    ReconcileResponse,
    RemoveResponse,
    StatsResponse,
    VideoAssetResponse,
)
from src.app_shell.context import ServiceContext
from src.components.registry import (
    GetAssetInput,
    ListAssetsInput,
    PublishInput,
    ReconcileInput,
    RemoveInput,
    StatsInput,
)
from src.domain.slugs import format_bytes

router = APIRouter(dependencies=[Depends(require_principal)])


@router.get("", response_model=AssetListResponse)
def list_assets(
    status: AssetStatus | None = Query(None, description="Filter by lifecycle status"),
    q: str | None = Query(None, description="Search display name and filename"),
    ctx: ServiceContext = Depends(get_context),
) -> AssetListResponse:
    out = ctx.registry.list(ListAssetsInput(status=status, query=q))
    return AssetListResponse(
        items=[VideoAssetResponse.from_asset(a) for a in out.items],
        total=out.total,
    )


@router.get("/stats", response_model=StatsResponse)
def asset_stats(ctx: ServiceContext = Depends(get_context)) -> StatsResponse:
    out = ctx.registry.stats(StatsInput())
    return StatsResponse(
        total=out.total,
        staged=out.staged,
        published=out.published,
        removing=out.removing,
        total_bytes=out.total_bytes,
        published_bytes=out.published_bytes,
        total_size_display=format_bytes(out.total_bytes),
    )


@router.post("/reconcile", response_model=ReconcileResponse)
def reconcile_assets(
    delete_orphans: bool = Query(True),
    ctx: ServiceContext = Depends(get_context),
) -> ReconcileResponse:
    out = ctx.registry.reconcile(
        ReconcileInput(active_keys=ctx.transport.active_keys(), delete_orphans=delete_orphans)
    )
    return ReconcileResponse(
        success=out.success,
        purged=out.purged,
        rolled_back=out.rolled_back,
        missing_objects=out.missing_objects,
        orphans_deleted=out.orphans_deleted,
        errors=[ErrorModel.from_error(e) for e in out.errors],
    )


@router.get("/{asset_id}", response_model=VideoAssetResponse)
def get_asset(asset_id: UUID, ctx: ServiceContext = Depends(get_context)) -> Any:
    out = ctx.registry.get(GetAssetInput(asset_id=asset_id))
    if not out.success or out.asset is None:
        return error_response(out.errors)
    return VideoAssetResponse.from_asset(out.asset)


@router.post("/{asset_id}/publish", response_model=VideoAssetResponse)
def publish_asset(asset_id: UUID, ctx: ServiceContext = Depends(get_context)) -> Any:
    out = ctx.registry.publish(PublishInput(asset_id=asset_id))
    if not out.success or out.asset is None:
        return error_response(out.errors)
    return VideoAssetResponse.from_asset(out.asset)


@router.delete("/{asset_id}", response_model=RemoveResponse)
def remove_asset(asset_id: UUID, ctx: ServiceContext = Depends(get_context)) -> Any:
    out = ctx.registry.remove(RemoveInput(asset_id=asset_id))
    if not out.success:
        return error_response(out.errors)
    return RemoveResponse(removed=out.removed)
