"""Upload component - authenticated, cancellable streaming into staging."""

from src.components.upload.component import (
    UploadCancelledError,
    UploadHandle,
    UploadTooLargeError,
    UploadTransport,
    generate_staging_key,
    percent_for,
)
from src.components.upload.models import BeginUploadInput, BeginUploadOutput, UploadResult
from src.components.upload.ports import CredentialVerifierPort, ObjectStorePort, RegistryPort

__all__ = [
    # Component
    "UploadTransport",
    "UploadHandle",
    "generate_staging_key",
    "percent_for",
    "UploadCancelledError",
    "UploadTooLargeError",
    # Models
    "BeginUploadInput",
    "BeginUploadOutput",
    "UploadResult",
    # Ports
    "CredentialVerifierPort",
    "RegistryPort",
    "ObjectStorePort",
]
