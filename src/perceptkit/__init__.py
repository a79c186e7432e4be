"""perceptkit - Async reconciliation of perception targets against content stores."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("perceptkit")
except PackageNotFoundError:
    __version__ = "0+local"
from perceptkit.config import PerceptkitConfig
from perceptkit.dealer import ArtifactDealer
from perceptkit.differ import ResultDelta, ResultDiffer
from perceptkit.exceptions import (
    ArtifactDecodeError,
    ArtifactLoadError,
    PerceptkitConfigError,
    PerceptkitError,
)
from perceptkit.loader import ArtifactLoader, HttpArtifactLoader, decode_artifacts
from perceptkit.meaning_maker import MeaningMaker
from perceptkit.models import (
    ARArtifact,
    BarcodeTarget,
    DetectableImage,
    DetectedImage,
    GeoCoordinates,
    ImageTarget,
    Marker,
    MediaEncoding,
    PerceptionResult,
    PerceptionState,
    PerceptionStateChangeRequest,
    PerceptionStateChangeResponse,
    ProbableTargets,
    generate_marker_id,
)
from perceptkit.presence import PresenceEntry, PresenceTracker
from perceptkit.stores import ArtifactStore, LocalArtifactStore

__all__ = [
    "__version__",
    "ARArtifact",
    "ArtifactDealer",
    "ArtifactDecodeError",
    "ArtifactLoadError",
    "ArtifactLoader",
    "ArtifactStore",
    "BarcodeTarget",
    "DetectableImage",
    "DetectedImage",
    "GeoCoordinates",
    "HttpArtifactLoader",
    "ImageTarget",
    "LocalArtifactStore",
    "Marker",
    "MeaningMaker",
    "MediaEncoding",
    "PerceptionResult",
    "PerceptionState",
    "PerceptionStateChangeRequest",
    "PerceptionStateChangeResponse",
    "PerceptkitConfig",
    "PerceptkitConfigError",
    "PerceptkitError",
    "PresenceEntry",
    "PresenceTracker",
    "ProbableTargets",
    "ResultDelta",
    "ResultDiffer",
    "decode_artifacts",
    "generate_marker_id",
]
