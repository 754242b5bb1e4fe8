import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.deps import get_context, get_rules, get_settings
from src.app_shell.config import validate_ops_rules

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings = get_settings()

    # Load rules and validate on startup (fail-fast)
    rules = get_rules()
    validate_ops_rules(rules, settings.data_dir)
    logger.info("Rules loaded from %s", settings.rules_path)

    ctx = app.dependency_overrides.get(get_context, get_context)()
    yield
    ctx.close()


app = FastAPI(
    title="ODC Video Service API",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- Routers ---
from src.api.routes import admin_assets, health, intake, playback  # noqa: E402

app.include_router(intake.router, prefix="/api", tags=["Intake"])
app.include_router(admin_assets.router, prefix="/api/admin/assets", tags=["Admin Assets"])
app.include_router(playback.router, prefix="/api/play", tags=["Playback"])
app.include_router(playback.media_router, prefix="/media", tags=["Media"])
app.include_router(health.router, tags=["Health"])


# CORS (Allow Frontend)
origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
