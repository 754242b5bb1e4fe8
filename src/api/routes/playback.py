"""
Public playback routes.

GET /api/play/{slug} resolves a published slug; unknown slugs answer 404
with the published slugs as a hint. GET /media/{key} streams published objects
for backends that have no CDN in front of them.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any, BinaryIO
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response, StreamingResponse

from src.api.deps import get_context
from src.api.errors import error_response
from src.api.schemas import PlaybackResponse, ProbeRequest, VideoAssetResponse
from src.app_shell.context import ServiceContext
from src.components.playback import ResolveInput
from src.components.registry import RecordProbeInput
from src.core.ports.storage import KeyNotFoundError, iter_chunks

router = APIRouter()
media_router = APIRouter()

# Clients revalidate against the ETag on every request.
CACHE_CONTROL_MEDIA = "no-cache"


@router.get("", response_model=list[PlaybackResponse])
def list_playable(ctx: ServiceContext = Depends(get_context)) -> list[PlaybackResponse]:
    hide = ctx.rules.playback.overlay_hide_seconds
    return [PlaybackResponse.from_target(t, hide) for t in ctx.resolver.published_targets()]


@router.get("/{slug}", response_model=PlaybackResponse, responses={404: {}})
def resolve_slug(slug: str, ctx: ServiceContext = Depends(get_context)) -> Any:
    out = ctx.resolver.resolve(ResolveInput(slug=slug))
    if not out.success or out.target is None:
        return error_response(out.errors, published_slugs=out.published_slugs)
    return PlaybackResponse.from_target(out.target, ctx.rules.playback.overlay_hide_seconds)


@router.post("/{asset_id}/probe", response_model=VideoAssetResponse, responses={404: {}})
def record_probe(
    asset_id: UUID,
    body: ProbeRequest,
    ctx: ServiceContext = Depends(get_context),
) -> Any:
    """First playable signal reports duration/resolution; later reports are ignored."""
    out = ctx.registry.record_probe(
        RecordProbeInput(
            asset_id=asset_id,
            duration_seconds=body.duration_seconds,
            resolution=body.resolution,
        )
    )
    if not out.success or out.asset is None:
        return error_response(out.errors)
    return VideoAssetResponse.from_asset(out.asset)


def _stream(handle: BinaryIO, chunk_size: int) -> Iterator[bytes]:
    try:
        yield from iter_chunks(handle, chunk_size)
    finally:
        handle.close()


@media_router.get("/{key:path}")
def serve_media(key: str, request: Request, ctx: ServiceContext = Depends(get_context)) -> Response:
    """Serve bytes only for keys the registry lists as published."""
    if not key.startswith(ctx.namespaces.public_prefix) or ".." in key.split("/"):
        raise HTTPException(status_code=404, detail="Not found")

    asset = ctx.registry.find_by_storage_key(key)
    if asset is None or asset.status != "published":
        raise HTTPException(status_code=404, detail="Not found")

    try:
        handle, meta = ctx.store.get_stream(key)
    except KeyNotFoundError as e:
        raise HTTPException(status_code=404, detail="Not found") from e

    if meta.etag and request.headers.get("if-none-match") == meta.etag:
        handle.close()
        return Response(status_code=304, headers={"ETag": meta.etag})

    headers = {"Cache-Control": CACHE_CONTROL_MEDIA, "Content-Length": str(meta.size_bytes)}
    if meta.etag:
        headers["ETag"] = meta.etag
    return StreamingResponse(
        _stream(handle, ctx.rules.storage.chunk_size_bytes),
        media_type=meta.content_type,
        headers=headers,
    )
