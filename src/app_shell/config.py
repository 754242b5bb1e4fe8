import logging
import os
from pathlib import Path

from src.rules.models import Rules

logger = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Raised when the process cannot start with the current configuration."""


def validate_ops_rules(rules: Rules, data_dir: Path | None = None) -> None:
    """
    Validate operational requirements before startup.

    Raises:
        ConfigurationError: Missing env vars, unusable data dir or s3 config
    """
    ops = rules.ops

    # 1. Required env
    missing = [name for name in ops.required_env if not os.environ.get(name)]
    if missing:
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    # 2. Backend specifics
    backend = rules.storage.backend
    if backend == "s3" and rules.storage.s3 is None:
        raise ConfigurationError("storage.backend is 's3' but storage.s3 is not configured")

    if backend != "memory" and data_dir is not None:
        try:
            data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(f"Data directory {data_dir} is not writable: {e}") from e

    logger.info("Configuration validated (backend=%s)", backend)
