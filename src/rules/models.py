from typing import Literal

from pydantic import BaseModel, Field, field_validator

DEFAULT_ALLOWED_MIME_TYPES = [
    "video/mp4",
    "video/webm",
    "video/quicktime",
    "video/x-msvideo",
]
DEFAULT_MAX_UPLOAD_BYTES = 500 * 1024 * 1024  # 500 MiB


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class IntakeRules(BaseModel):
    allowlist_mime_types: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_MIME_TYPES)
    )
    max_upload_bytes: int = Field(default=DEFAULT_MAX_UPLOAD_BYTES, gt=0)

    @field_validator("allowlist_mime_types")
    @classmethod
    def _lowercase(cls, v: list[str]) -> list[str]:
        return [m.strip().lower() for m in v if m.strip()]


class S3Rules(BaseModel):
    bucket: str
    region_name: str = "auto"
    endpoint_url: str | None = None
    public_base_url: str | None = None
    connect_timeout_seconds: float = 3.0
    read_timeout_seconds: float = 60.0
    max_attempts: int = 5
    addressing_style: Literal["path", "virtual", "auto"] = "path"


class StorageRules(BaseModel):
    backend: Literal["memory", "local", "s3"] = "local"
    staging_prefix: str = "private/uploads-temp/"
    public_prefix: str = "public/"
    chunk_size_bytes: int = Field(default=1024 * 1024, gt=0)
    call_timeout_seconds: float = Field(default=30.0, gt=0)
    s3: S3Rules | None = None

    @field_validator("staging_prefix", "public_prefix")
    @classmethod
    def _trailing_slash(cls, v: str) -> str:
        v = v.strip().lstrip("/")
        return v if v.endswith("/") else v + "/"


class PlaybackRules(BaseModel):
    public_base_url: str = "http://localhost:8000/media"
    overlay_hide_seconds: float = 3.0
    include_slug_hint: bool = True


class AuthRules(BaseModel):
    mode: Literal["static", "jwt"] = "static"
    secret_env: str = "ODC_UPLOAD_SECRET"
    jwt_algorithm: str = "HS256"


class UploadRules(BaseModel):
    max_parallel_uploads: int = Field(default=4, gt=0)


class OpsRules(BaseModel):
    required_env: list[str] = Field(default_factory=list)


class Rules(BaseModel):
    project: ProjectRules
    intake: IntakeRules = Field(default_factory=IntakeRules)
    storage: StorageRules = Field(default_factory=StorageRules)
    playback: PlaybackRules = Field(default_factory=PlaybackRules)
    auth: AuthRules = Field(default_factory=AuthRules)
    uploads: UploadRules = Field(default_factory=UploadRules)
    ops: OpsRules = Field(default_factory=OpsRules)
