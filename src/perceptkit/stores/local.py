"""In-memory artifact store."""

from __future__ import annotations

import logging

from perceptkit.models.artifact import ARArtifact, BarcodeTarget, ImageTarget
from perceptkit.models.perception import PerceptionResult, PerceptionState
from perceptkit.models.targets import DetectableImage
from perceptkit.stores.base import ArtifactStore

_logger = logging.getLogger(__name__)


class LocalArtifactStore(ArtifactStore):
    """Index artifacts by barcode text and image name.

    Results and detectable images are built once per (artifact, target)
    when the artifact is added and handed out by reference afterwards, so
    repeated queries return identical objects.  Geolocation is ignored.
    """

    def __init__(self) -> None:
        self._artifacts: list[ARArtifact] = []
        self._artifact_ids: set[int] = set()
        self._barcodes: dict[str, list[PerceptionResult]] = {}
        self._images: dict[str, list[PerceptionResult]] = {}
        self._detectable_images: list[DetectableImage] = []

    def __len__(self) -> int:
        return len(self._artifacts)

    @property
    def artifacts(self) -> tuple[ARArtifact, ...]:
        return tuple(self._artifacts)

    def add_artifact(self, artifact: ARArtifact) -> None:
        """Index an artifact.  Adding the same object twice is a no-op."""
        if id(artifact) in self._artifact_ids:
            return
        self._artifact_ids.add(id(artifact))
        self._artifacts.append(artifact)

        indexed = 0
        for target in artifact.ar_target:
            result = PerceptionResult(target=target, artifact=artifact)
            if isinstance(target, BarcodeTarget):
                self._barcodes.setdefault(target.text, []).append(result)
                indexed += 1
            elif isinstance(target, ImageTarget):
                self._images.setdefault(target.name, []).append(result)
                self._detectable_images.append(DetectableImage(id=target.name, media=target.media()))
                indexed += 1

        if not indexed:
            _logger.debug("Artifact from %s has no supported targets", artifact.url or "<inline>")

    def clear(self) -> None:
        self._artifacts.clear()
        self._artifact_ids.clear()
        self._barcodes.clear()
        self._images.clear()
        self._detectable_images.clear()

    async def get_detectable_images(self, state: PerceptionState) -> list[DetectableImage]:
        return list(self._detectable_images)

    async def find_relevant_artifacts(self, state: PerceptionState) -> list[PerceptionResult]:
        results: list[PerceptionResult] = []
        for marker in state.markers:
            results.extend(self._barcodes.get(marker.value, ()))
        for image in state.images:
            results.extend(self._images.get(image.id, ()))
        return results
