"""Data models for perception targets, artifacts and reconciliation results."""

from perceptkit.models._base import PerceptionBaseModel
from perceptkit.models.artifact import (
    ARArtifact,
    BarcodeTarget,
    ImageTarget,
    TargetDescriptor,
    UnknownTarget,
    parse_target,
)
from perceptkit.models.perception import (
    PerceptionResult,
    PerceptionState,
    PerceptionStateChangeRequest,
    PerceptionStateChangeResponse,
    ProbableTargets,
    ShouldLoadArtifactsFrom,
    Target,
)
from perceptkit.models.targets import (
    DetectableImage,
    DetectedImage,
    GeoCoordinates,
    Marker,
    MediaEncoding,
    generate_marker_id,
)

__all__ = [
    "ARArtifact",
    "BarcodeTarget",
    "DetectableImage",
    "DetectedImage",
    "GeoCoordinates",
    "ImageTarget",
    "Marker",
    "MediaEncoding",
    "PerceptionBaseModel",
    "PerceptionResult",
    "PerceptionState",
    "PerceptionStateChangeRequest",
    "PerceptionStateChangeResponse",
    "ProbableTargets",
    "ShouldLoadArtifactsFrom",
    "Target",
    "TargetDescriptor",
    "UnknownTarget",
    "generate_marker_id",
    "parse_target",
]
