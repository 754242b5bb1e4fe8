"""Map component errors onto HTTP responses."""

from __future__ import annotations

from fastapi import status
from fastapi.responses import JSONResponse

from src.api.schemas import ErrorModel, ErrorResponse
from src.domain.errors import LifecycleError

STATUS_BY_CODE: dict[str, int] = {
    "auth_error": status.HTTP_401_UNAUTHORIZED,
    "too_large": status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    "invalid_type": status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
    "empty_file": status.HTTP_400_BAD_REQUEST,
    "not_found": status.HTTP_404_NOT_FOUND,
    "conflict": status.HTTP_409_CONFLICT,
    "cancelled": status.HTTP_409_CONFLICT,
}


def status_for(error: LifecycleError) -> int:
    if error.code == "transport_error":
        return (
            status.HTTP_503_SERVICE_UNAVAILABLE
            if error.retryable
            else status.HTTP_502_BAD_GATEWAY
        )
    return STATUS_BY_CODE.get(error.code, status.HTTP_400_BAD_REQUEST)


def error_response(
    errors: list[LifecycleError],
    *,
    published_slugs: list[str] | None = None,
) -> JSONResponse:
    """Status code comes from the first error; every error is listed in the body."""
    code = status_for(errors[0]) if errors else status.HTTP_400_BAD_REQUEST
    body = ErrorResponse(
        errors=[ErrorModel.from_error(e) for e in errors],
        published_slugs=published_slugs,
    )
    headers = {"WWW-Authenticate": "Bearer"} if code == status.HTTP_401_UNAUTHORIZED else None
    if code == status.HTTP_503_SERVICE_UNAVAILABLE:
        headers = {"Retry-After": "5"}
    return JSONResponse(
        status_code=code,
        content=body.model_dump(mode="json", exclude_none=True),
        headers=headers,
    )
