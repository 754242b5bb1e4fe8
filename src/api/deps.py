import os
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from src.api.auth_utils import parse_bearer
from src.app_shell.context import ServiceContext
from src.domain.entities import Principal
from src.rules.loader import load_rules
from src.rules.models import Rules


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get("ODC_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "videos.db")
        self.storage_path = Path(os.environ.get("ODC_STORAGE_PATH", str(self.data_dir / "objects")))
        self.rules_path = Path(os.environ.get("ODC_RULES_PATH", str(self.base_dir / "rules.yaml")))
        self.migrations_dir = Path(
            os.environ.get("ODC_MIGRATIONS_DIR", str(self.base_dir / "migrations"))
        )
        self.public_base_url = os.environ.get("ODC_PUBLIC_BASE_URL") or None
        self.s3_access_key_id = os.environ.get("ODC_S3_ACCESS_KEY_ID") or None
        self.s3_secret_access_key = os.environ.get("ODC_S3_SECRET_ACCESS_KEY") or None


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules() -> Rules:
    return load_rules(get_settings().rules_path)


# --- Context ---
@lru_cache
def get_context() -> ServiceContext:
    """One context per process: the registry's per-id guard must be shared."""
    settings = get_settings()
    return ServiceContext.create(
        get_rules(),
        db_path=settings.db_path,
        storage_path=settings.storage_path,
        migrations_dir=settings.migrations_dir,
        public_base_url=settings.public_base_url,
        s3_access_key_id=settings.s3_access_key_id,
        s3_secret_access_key=settings.s3_secret_access_key,
    )


# --- Auth ---
def get_credential(request: Request) -> str | None:
    """Opaque bearer credential from the Authorization header, if any."""
    return parse_bearer(request.headers.get("Authorization"))


def require_principal(
    credential: Annotated[str | None, Depends(get_credential)],
    ctx: Annotated[ServiceContext, Depends(get_context)],
) -> Principal:
    principal = ctx.verifier.verify(credential)
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid credential",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal
