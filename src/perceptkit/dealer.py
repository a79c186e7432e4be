"""Fan perception queries out to every registered content store."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from perceptkit.models.perception import PerceptionResult, PerceptionState, ProbableTargets
from perceptkit.models.targets import DetectableImage

_logger = logging.getLogger(__name__)


async def _no_results(_state: PerceptionState) -> list[Any]:
    return []


class ArtifactDealer:
    """Aggregate results from any number of content stores.

    Stores are queried concurrently and their results concatenated in
    registration order.  Nothing is de-duplicated across stores.  A store
    that raises fails the whole query: there is no partial-result fallback.
    """

    def __init__(self) -> None:
        self._stores: list[Any] = []

    @property
    def stores(self) -> tuple[Any, ...]:
        return tuple(self._stores)

    def add_artifact_store(self, store: Any) -> None:
        """Register a store.  Registration is permanent."""
        self._stores.append(store)
        _logger.debug("Registered %s (%d stores)", type(store).__name__, len(self._stores))

    def _capability(self, store: Any, name: str) -> Callable[[PerceptionState], Awaitable[list[Any]]]:
        method = getattr(store, name, None)
        if method is None or not callable(method):
            return _no_results
        return method  # type: ignore[no-any-return]

    async def _fan_out(self, name: str, state: PerceptionState) -> list[Any]:
        per_store = await asyncio.gather(*(self._capability(store, name)(state) for store in self._stores))
        flattened: list[Any] = []
        for results in per_store:
            flattened.extend(results or ())
        return flattened

    async def get_perception_results(self, state: PerceptionState) -> list[PerceptionResult]:
        """All results any store considers relevant for ``state``."""
        return await self._fan_out("find_relevant_artifacts", state)

    async def predict_perception_targets(self, state: PerceptionState) -> ProbableTargets:
        """Images every store wants the detector to watch for."""
        images: list[DetectableImage] = await self._fan_out("get_detectable_images", state)
        return ProbableTargets(detectable_images=images)
