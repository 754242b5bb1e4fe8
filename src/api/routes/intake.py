"""
Intake API routes.

POST /api/upload accepts a bearer credential and a multipart `file`, streams
it into the staging namespace and answers with the gateway-style JSON body.
401/413/415 map to auth, too-large and invalid-type failures.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse

from src.api.deps import get_context, get_credential
from src.api.errors import error_response
from src.api.schemas import UploadResponse
from src.app_shell.context import ServiceContext
from src.components.upload import BeginUploadInput

router = APIRouter()


def declared_size(file: UploadFile) -> int:
    """Size of the spooled upload; measured by seeking when the parser did not record it."""
    if file.size is not None:
        return file.size
    stream = file.file
    position = stream.tell()
    stream.seek(0, 2)
    size = stream.tell()
    stream.seek(position)
    return size


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses={401: {}, 409: {}, 413: {}, 415: {}, 503: {}},
)
def upload_video(
    file: UploadFile = File(...),
    display_name: str | None = Form(None),
    dedup_token: str | None = Form(None),
    sha256: str | None = Form(None),
    credential: str | None = Depends(get_credential),
    ctx: ServiceContext = Depends(get_context),
) -> Any:
    """Upload a video into staging."""
    out = ctx.transport.begin_upload(
        BeginUploadInput(
            file=file.file,
            filename=file.filename or "upload",
            content_type=file.content_type or "application/octet-stream",
            size_bytes=declared_size(file),
            credential=credential,
            dedup_token=dedup_token,
            display_name=display_name,
            expected_sha256=sha256,
        )
    )
    if out.handle is None:
        return error_response(out.errors)

    result = out.handle.result()
    if not result.success or result.asset_id is None or result.storage_key is None:
        return error_response(result.errors)

    body = UploadResponse(
        key=result.storage_key,
        url=ctx.store.get_public_url(result.storage_key),
        asset_id=result.asset_id,
        is_duplicate=result.is_duplicate,
        size_bytes=result.size_bytes,
        sha256=result.sha256,
    )
    status_code = 200 if result.is_duplicate else 201
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))
