"""Registry component - catalog and lifecycle of video assets."""

from src.components.registry.component import AssetRegistry, matches_query, run
from src.components.registry.models import (
    AssetListOutput,
    AssetOutput,
    GetAssetInput,
    ListAssetsInput,
    PublishInput,
    PublishOutput,
    ReconcileInput,
    ReconcileOutput,
    RecordProbeInput,
    RegisterAssetInput,
    RegisterOutput,
    RemoveInput,
    RemoveOutput,
    StatsInput,
    StatsOutput,
)
from src.components.registry.ports import ClockPort, ObjectStorePort, VideoAssetRepoPort

__all__ = [
    # Entry point
    "run",
    # Component
    "AssetRegistry",
    "matches_query",
    # Models
    "RegisterAssetInput",
    "RegisterOutput",
    "GetAssetInput",
    "AssetOutput",
    "ListAssetsInput",
    "AssetListOutput",
    "PublishInput",
    "PublishOutput",
    "RemoveInput",
    "RemoveOutput",
    "RecordProbeInput",
    "StatsInput",
    "StatsOutput",
    "ReconcileInput",
    "ReconcileOutput",
    # Ports
    "VideoAssetRepoPort",
    "ObjectStorePort",
    "ClockPort",
]
