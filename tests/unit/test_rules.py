"""
Rules loader tests: YAML parsing, defaults and validation failures.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from src.rules.loader import load_rules, parse_rules
from src.rules.models import DEFAULT_MAX_UPLOAD_BYTES

MINIMAL = """
project:
  slug: test
  rules_version: "1.0"
"""


@pytest.fixture
def project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent.parent


def test_project_rules_file_loads(project_root: Path) -> None:
    rules = load_rules(project_root / "rules.yaml")

    assert rules.project.slug == "odc-video-service"
    assert "video/mp4" in rules.intake.allowlist_mime_types
    assert rules.intake.max_upload_bytes == 500 * 1024 * 1024
    assert rules.storage.staging_prefix == "private/uploads-temp/"
    assert rules.storage.public_prefix == "public/"
    assert rules.playback.overlay_hide_seconds == 3


def test_defaults_fill_missing_sections() -> None:
    rules = parse_rules(MINIMAL)

    assert rules.intake.max_upload_bytes == DEFAULT_MAX_UPLOAD_BYTES
    assert rules.storage.backend == "local"
    assert rules.auth.mode == "static"
    assert rules.ops.required_env == []


def test_markdown_fence_is_stripped() -> None:
    rules = parse_rules(f"# Rules\n\n```yaml{MINIMAL}```\n\ntrailing prose")

    assert rules.project.slug == "test"


def test_prefixes_are_normalized() -> None:
    rules = parse_rules(MINIMAL + "storage:\n  staging_prefix: /tmp-uploads\n  public_prefix: live\n")

    assert rules.storage.staging_prefix == "tmp-uploads/"
    assert rules.storage.public_prefix == "live/"


def test_mime_types_lowercased() -> None:
    rules = parse_rules(MINIMAL + "intake:\n  allowlist_mime_types: [Video/MP4]\n")

    assert rules.intake.allowlist_mime_types == ["video/mp4"]


@pytest.mark.parametrize(
    "content",
    [
        "project: [unclosed",
        "- just\n- a list\n",
        "intake:\n  max_upload_bytes: 10\n",
        MINIMAL + "intake:\n  max_upload_bytes: 0\n",
        MINIMAL + "storage:\n  backend: ftp\n",
    ],
)
def test_invalid_rules_raise_value_error(content: str) -> None:
    with pytest.raises(ValueError):
        parse_rules(content)


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_rules(tmp_path / "nope.yaml")
