import hmac
import logging
from datetime import timedelta

from src.api.auth_utils import ALGORITHM, create_access_token, decode_access_token
from src.domain.entities import Principal

logger = logging.getLogger(__name__)


class StaticTokenVerifier:
    """Shared-secret bearer check: the credential must equal the upload secret."""

    def __init__(self, secret: str, subject: str = "uploader") -> None:
        if not secret:
            raise ValueError("Upload secret must not be empty")
        self._secret = secret.encode()
        self._subject = subject

    def verify(self, credential: str | None) -> Principal | None:
        if not credential:
            return None
        if not hmac.compare_digest(credential.encode(), self._secret):
            logger.warning("Rejected upload credential")
            return None
        return Principal(subject=self._subject, auth_mode="static")


class JWTCredentialVerifier:
    """Auth adapter that accepts signed JWTs carrying a `sub` claim."""

    def __init__(self, secret_key: str, algorithm: str = ALGORITHM) -> None:
        if not secret_key:
            raise ValueError("JWT secret must not be empty")
        self._secret_key = secret_key
        self._algorithm = algorithm

    def create_token(self, subject: str, ttl_minutes: int = 60) -> str:
        return create_access_token(
            {"sub": subject},
            self._secret_key,
            timedelta(minutes=ttl_minutes),
            algorithm=self._algorithm,
        )

    def verify(self, credential: str | None) -> Principal | None:
        if not credential:
            return None
        payload = decode_access_token(credential, self._secret_key, self._algorithm)
        if not payload or not payload.get("sub"):
            logger.warning("Rejected upload token")
            return None
        return Principal(subject=str(payload["sub"]), auth_mode="jwt")
