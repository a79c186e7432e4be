"""Content store contract."""

from __future__ import annotations

from perceptkit.models.perception import PerceptionResult, PerceptionState
from perceptkit.models.targets import DetectableImage


class ArtifactStore:
    """Base class for content stores.

    Both capabilities default to "nothing to report", so a store only
    overrides what it supports.  The dealer also accepts duck-typed stores
    that do not inherit from this class; a missing method counts as an
    empty result.

    Implementations must return the *same* artifact and target objects for
    the same logical result on every call.  The result differ compares by
    reference, so rebuilding artifacts per query reports them as found and
    lost on every tick.

    Exceptions raised by a store are not caught and abort the current tick.
    """

    async def get_detectable_images(self, state: PerceptionState) -> list[DetectableImage]:
        return []

    async def find_relevant_artifacts(self, state: PerceptionState) -> list[PerceptionResult]:
        return []
