from collections.abc import Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.adapters.clock import FixedClock
from src.adapters.memory_repo import InMemoryVideoAssetRepo
from src.adapters.memory_storage import InMemoryObjectStore
from src.api.deps import get_context
from src.api.routes import admin_assets, health, intake, playback
from src.app_shell.context import ServiceContext
from src.rules.loader import parse_rules

from tests.conftest import UPLOAD_SECRET

API_RULES = """
project:
  slug: lobby-screens
  rules_version: "1.0"
intake:
  max_upload_bytes: 65536
storage:
  backend: memory
  chunk_size_bytes: 1024
playback:
  public_base_url: "http://testserver/media"
  overlay_hide_seconds: 3
"""


@pytest.fixture
def ctx() -> Iterator[ServiceContext]:
    context = ServiceContext.create(
        parse_rules(API_RULES),
        upload_secret=UPLOAD_SECRET,
        store=InMemoryObjectStore(chunk_size=1024, public_base_url="http://testserver/media"),
        repo=InMemoryVideoAssetRepo(),
        clock=FixedClock(),
    )
    yield context
    context.close()


@pytest.fixture
def app(ctx: ServiceContext) -> FastAPI:
    """Fresh app with every route and the test context; no lifespan."""
    app = FastAPI()
    app.include_router(intake.router, prefix="/api")
    app.include_router(admin_assets.router, prefix="/api/admin/assets")
    app.include_router(playback.router, prefix="/api/play")
    app.include_router(playback.media_router, prefix="/media")
    app.include_router(health.router)
    app.dependency_overrides[get_context] = lambda: ctx
    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {UPLOAD_SECRET}"}


@pytest.fixture
def upload(client: TestClient, auth_headers: dict[str, str]):
    """POST a file to /api/upload and return the response."""

    def _upload(
        data: bytes = b"\x00\x00\x00\x18ftypmp42" + b"\x01" * 2048,
        filename: str = "clip.mp4",
        content_type: str = "video/mp4",
        headers: dict[str, str] | None = None,
        **form: str,
    ):
        return client.post(
            "/api/upload",
            files={"file": (filename, data, content_type)},
            data=form,
            headers=auth_headers if headers is None else headers,
        )

    return _upload
