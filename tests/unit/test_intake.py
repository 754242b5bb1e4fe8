"""
Intake validator tests: allow-list and size ceiling, checked in that order.
"""

from __future__ import annotations

import pytest

from src.components.intake import (
    DEFAULT_CONFIG,
    IntakeConfig,
    ValidateInput,
    normalize_mime_type,
    run,
    validate,
    validate_mime_type,
    validate_size,
)
from src.rules.models import IntakeRules

MIB = 1024 * 1024


class TestMimeType:
    @pytest.mark.parametrize(
        "mime", ["video/mp4", "video/webm", "video/quicktime", "video/x-msvideo"]
    )
    def test_allowed_types_pass(self, mime: str) -> None:
        assert validate_mime_type(mime, DEFAULT_CONFIG) == []

    def test_text_file_rejected(self) -> None:
        errors = validate_mime_type("text/plain", DEFAULT_CONFIG)

        assert len(errors) == 1
        assert errors[0].code == "invalid_type"
        assert errors[0].field == "content_type"
        assert "video/mp4" in errors[0].message

    def test_case_and_parameters_ignored(self) -> None:
        assert normalize_mime_type("Video/MP4; codecs=avc1") == "video/mp4"
        assert validate_mime_type("VIDEO/WEBM", DEFAULT_CONFIG) == []

    def test_missing_type_rejected(self) -> None:
        assert validate_mime_type(None, DEFAULT_CONFIG)[0].code == "invalid_type"


class TestSize:
    def test_default_ceiling_is_500_mib(self) -> None:
        assert DEFAULT_CONFIG.max_upload_bytes == 500 * MIB
        assert validate_size(500 * MIB, DEFAULT_CONFIG) == []

    def test_over_ceiling_rejected(self) -> None:
        errors = validate_size(600 * MIB, DEFAULT_CONFIG)

        assert errors[0].code == "too_large"
        assert not errors[0].retryable

    def test_empty_file_rejected(self) -> None:
        assert validate_size(0, DEFAULT_CONFIG)[0].code == "empty_file"


class TestValidate:
    def test_ok(self) -> None:
        out = validate("video/mp4", 150 * MIB)

        assert out.ok
        assert out.errors == []

    def test_type_checked_before_size(self) -> None:
        out = validate("text/plain", 600 * MIB)

        assert [e.code for e in out.errors] == ["invalid_type"]

    def test_config_from_rules(self) -> None:
        config = IntakeConfig.from_rules(
            IntakeRules(allowlist_mime_types=["Video/MP4"], max_upload_bytes=10)
        )

        assert validate("video/mp4", 10, config).ok
        assert validate("video/webm", 10, config).errors[0].code == "invalid_type"
        assert validate("video/mp4", 11, config).errors[0].code == "too_large"

    def test_run_entry_point(self) -> None:
        assert run(ValidateInput(mime_type="video/quicktime", size_bytes=1)).ok
