"""Per-tick query input and reconciliation output."""

from __future__ import annotations

from collections.abc import Callable, Sequence

from pydantic import Field
from yarl import URL

from perceptkit.models._base import PerceptionBaseModel
from perceptkit.models.artifact import ARArtifact, TargetDescriptor
from perceptkit.models.targets import DetectableImage, DetectedImage, GeoCoordinates, Marker

ShouldLoadArtifactsFrom = Sequence[str] | Callable[[URL], bool]
"""Either a list of allowed origins or a predicate over the parsed URL."""

Target = Marker | DetectedImage


class PerceptionState(PerceptionBaseModel):
    """Every target believed present for one tick, plus the current geo fix.

    This is a set, not a detection event: debounced targets that were not
    observed this exact tick are still part of it.
    """

    markers: list[Marker] = Field(default_factory=list)
    geo: GeoCoordinates | None = None
    images: list[DetectedImage] = Field(default_factory=list)


class PerceptionResult(PerceptionBaseModel):
    """An artifact paired with the target that triggered it.

    Two results are the same logical result when they carry the same
    ``artifact`` and ``target`` *objects*; field equality is never used.
    """

    target: TargetDescriptor | None = None
    artifact: ARArtifact


class ProbableTargets(PerceptionBaseModel):
    """Catalog of images the detector should arm for the next tick."""

    detectable_images: list[DetectableImage] = Field(default_factory=list)


class PerceptionStateChangeRequest(PerceptionState):
    """One tick of raw observations.

    ``should_load_artifacts_from`` gates side-loading of URL-valued markers;
    ``None`` means same-origin only.
    """

    should_load_artifacts_from: ShouldLoadArtifactsFrom | None = None


class PerceptionStateChangeResponse(ProbableTargets):
    """Reconciliation output for one tick."""

    found: list[PerceptionResult] = Field(default_factory=list)
    lost: list[PerceptionResult] = Field(default_factory=list)
    new_targets: list[Target] = Field(default_factory=list)
