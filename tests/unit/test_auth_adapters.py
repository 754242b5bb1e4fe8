from datetime import UTC, datetime, timedelta

import pytest

from src.adapters.auth.crypto import JWTCredentialVerifier, StaticTokenVerifier
from src.api.auth_utils import create_access_token, parse_bearer


def test_static_secret_accepted():
    verifier = StaticTokenVerifier("s3cret")

    principal = verifier.verify("s3cret")

    assert principal is not None
    assert principal.auth_mode == "static"


def test_static_secret_rejected():
    verifier = StaticTokenVerifier("s3cret")

    assert verifier.verify("wrong") is None
    assert verifier.verify("") is None
    assert verifier.verify(None) is None


def test_static_requires_secret():
    with pytest.raises(ValueError):
        StaticTokenVerifier("")


def test_jwt_roundtrip():
    verifier = JWTCredentialVerifier("jwt-key")
    token = verifier.create_token("operator-7")

    principal = verifier.verify(token)

    assert principal is not None
    assert principal.subject == "operator-7"
    assert principal.auth_mode == "jwt"


def test_jwt_wrong_key_rejected():
    token = JWTCredentialVerifier("one-key").create_token("op")

    assert JWTCredentialVerifier("other-key").verify(token) is None


def test_jwt_expired_rejected():
    past = datetime.now(UTC) - timedelta(hours=2)
    token = create_access_token(
        {"sub": "op"}, "jwt-key", expires_delta=timedelta(minutes=5), now_utc=past
    )

    assert JWTCredentialVerifier("jwt-key").verify(token) is None


def test_jwt_without_subject_rejected():
    token = create_access_token({"scope": "upload"}, "jwt-key")

    assert JWTCredentialVerifier("jwt-key").verify(token) is None


def test_parse_bearer():
    assert parse_bearer("Bearer abc") == "abc"
    assert parse_bearer("bearer   abc ") == "abc"
    assert parse_bearer("Basic abc") is None
    assert parse_bearer("Bearer") is None
    assert parse_bearer(None) is None
