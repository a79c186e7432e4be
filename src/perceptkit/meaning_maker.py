"""Per-tick reconciliation of perception targets against content stores."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from typing import Any

from yarl import URL

from perceptkit.config import PerceptkitConfig, normalize_origin
from perceptkit.dealer import ArtifactDealer
from perceptkit.differ import ResultDiffer
from perceptkit.loader import ArtifactLoader, HttpArtifactLoader, decode_artifacts
from perceptkit.models.artifact import ARArtifact
from perceptkit.models.perception import (
    PerceptionStateChangeRequest,
    PerceptionStateChangeResponse,
    ShouldLoadArtifactsFrom,
)
from perceptkit.models.targets import Marker
from perceptkit.presence import PresenceTracker, monotonic_ms
from perceptkit.stores.local import LocalArtifactStore

_logger = logging.getLogger(__name__)

_LOADABLE_SCHEMES = frozenset({"http", "https"})


def url_origin(url: URL) -> str:
    """``scheme://host[:port]`` of an absolute URL, default ports omitted."""
    return str(url.origin())


def parse_absolute_url(value: str) -> URL | None:
    """Parse a marker value as an absolute http(s) URL.

    Relative references are rejected so that ordinary barcode payloads are
    never mistaken for paths.
    """
    try:
        url = URL(value)
    except (TypeError, ValueError):
        return None
    if not url.is_absolute() or url.scheme not in _LOADABLE_SCHEMES or not url.host:
        return None
    return url


def _origins_predicate(origins: Iterable[str]) -> Callable[[URL], bool]:
    allowed: set[str] = set()
    for origin in origins:
        try:
            allowed.add(normalize_origin(origin))
        except (TypeError, ValueError):
            _logger.debug("Ignoring malformed origin %r", origin)
    return lambda url: url_origin(url) in allowed


class MeaningMaker:
    """Turn noisy per-frame detections into stable found/lost artifact events.

    One instance owns a :class:`PresenceTracker`, a :class:`ResultDiffer`, an
    :class:`ArtifactDealer` and a default :class:`LocalArtifactStore` (always
    the first registered store).  None of them are safe for concurrent
    callers: drive :meth:`update_perception_state` from a single loop and
    await each tick before starting the next.

    Usage::

        async with MeaningMaker(PerceptkitConfig(origin="https://example.com")) as mm:
            mm.load_artifacts_from_json(json_ld)
            response = await mm.update_perception_state(
                PerceptionStateChangeRequest(markers=[Marker(type="qr_code", value="1234")])
            )
    """

    def __init__(
        self,
        config: PerceptkitConfig | None = None,
        *,
        loader: ArtifactLoader | None = None,
        clock: Callable[[], float] = monotonic_ms,
    ) -> None:
        self._config = config or PerceptkitConfig()
        self._owns_loader = loader is None
        self._loader: ArtifactLoader = (
            loader if loader is not None else HttpArtifactLoader(timeout=self._config.fetch_timeout)
        )
        self._store = LocalArtifactStore()
        self._dealer = ArtifactDealer()
        self._tracker = PresenceTracker(buffer_window=self._config.buffer_window_ms, clock=clock)
        self._differ = ResultDiffer()
        self._artifacts_for_url: dict[str, list[ARArtifact]] = {}
        self._inflight: dict[str, asyncio.Task[list[ARArtifact]]] = {}
        self.add_artifact_store(self._store)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> MeaningMaker:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Cancel pending side-loads and close an owned loader.

        A tick waiting on a cancelled side-load still completes; the marker
        is simply not loaded.
        """
        tasks = list(self._inflight.values())
        self._inflight.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if self._owns_loader and isinstance(self._loader, HttpArtifactLoader):
            await self._loader.close()

    def reset(self) -> None:
        """Forget every tracked target and the previous tick's results.

        Loaded artifacts and registered stores are kept.
        """
        self._tracker.reset()
        self._differ.reset()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def config(self) -> PerceptkitConfig:
        return self._config

    @property
    def buffer_window(self) -> float:
        """Milliseconds a target stays believed-present after its last sighting.

        Keeps targets from being spuriously lost and found again when a
        detector misses them for a few frames.
        """
        return self._tracker.buffer_window

    @buffer_window.setter
    def buffer_window(self, ms: float) -> None:
        self._tracker.buffer_window = ms

    @property
    def store(self) -> LocalArtifactStore:
        return self._store

    def add_artifact_store(self, store: Any) -> None:
        self._dealer.add_artifact_store(store)

    # ------------------------------------------------------------------
    # Artifact loading
    # ------------------------------------------------------------------

    def save_artifacts(self, artifacts: Iterable[ARArtifact]) -> None:
        for artifact in artifacts:
            self._store.add_artifact(artifact)

    def load_artifacts_from_json(self, json_ld: Any, *, url: str | None = None) -> list[ARArtifact]:
        """Decode a JSON-LD document and index its artifacts."""
        artifacts = decode_artifacts(json_ld, url=url)
        self.save_artifacts(artifacts)
        if url is not None:
            self._artifacts_for_url[url] = artifacts
        return artifacts

    async def _fetch(self, url: URL) -> list[ARArtifact]:
        artifacts = await self._loader.from_url(url)
        self.save_artifacts(artifacts)
        self._artifacts_for_url[str(url)] = artifacts
        _logger.debug("Indexed %d artifact(s) from %s", len(artifacts), url)
        return artifacts

    async def load_artifacts_from_url(self, url: URL | str) -> list[ARArtifact]:
        """Load and index artifacts from ``url`` unconditionally.

        Each URL is fetched at most once; concurrent callers share the same
        fetch.  Failures propagate and are not cached, so a later call
        retries.
        """
        if isinstance(url, str):
            url = URL(url)
        key = str(url)
        cached = self._artifacts_for_url.get(key)
        if cached is not None:
            return cached

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.get_running_loop().create_task(self._fetch(url))
            self._inflight[key] = task
            task.add_done_callback(lambda _done, key=key: self._inflight.pop(key, None))
        return await asyncio.shield(task)

    def _resolve_predicate(self, should_load_artifacts_from: ShouldLoadArtifactsFrom | None) -> Callable[[URL], bool]:
        if should_load_artifacts_from is None:
            if self._config.allowed_origins:
                return _origins_predicate(self._config.allowed_origins)
            origin = self._config.origin
            if origin is None:
                return lambda _url: False
            return _origins_predicate([origin])
        if callable(should_load_artifacts_from):
            return should_load_artifacts_from
        return _origins_predicate(should_load_artifacts_from)

    async def load_artifacts_from_supported_url(
        self,
        url: URL | str,
        should_load_artifacts_from: ShouldLoadArtifactsFrom | None = None,
    ) -> list[ARArtifact]:
        """Load artifacts from ``url`` only if the predicate allows it.

        ``None`` restricts loading to the configured origin (or
        ``config.allowed_origins`` when set).  A list of origins is matched
        by membership; a callable is called with the parsed URL.
        """
        if isinstance(url, str):
            url = URL(url)
        if not self._resolve_predicate(should_load_artifacts_from)(url):
            return []
        return await self.load_artifacts_from_url(url)

    async def _check_marker_is_dynamic(
        self,
        marker: Marker,
        should_load_artifacts_from: ShouldLoadArtifactsFrom | None,
    ) -> None:
        url = parse_absolute_url(marker.value)
        if url is None:
            return
        try:
            await self.load_artifacts_from_supported_url(url, should_load_artifacts_from)
        except asyncio.CancelledError:
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
            # The shared fetch was cancelled by close(), not this tick.
            _logger.debug("Side-load of %s cancelled", url)
        except Exception:
            _logger.warning("Failed to load artifacts from %s", url, exc_info=True)

    async def _side_load(
        self,
        markers: Sequence[Marker],
        should_load_artifacts_from: ShouldLoadArtifactsFrom | None,
    ) -> None:
        await asyncio.gather(*(self._check_marker_is_dynamic(marker, should_load_artifacts_from) for marker in markers))

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    async def update_perception_state(
        self,
        request: PerceptionStateChangeRequest | None = None,
    ) -> PerceptionStateChangeResponse:
        """Run one reconciliation tick.

        1. Record the observed markers and images; collect first sightings.
        2. Expire targets unseen for longer than the buffer window.
        3. Side-load URL-valued markers, concurrently with step 4.
        4. Query every store with the believed-present targets, and ask
           every store which images to watch for next.
        5. Diff the results against the previous tick.

        A store that raises aborts the tick; presence updates from steps 1-2
        are kept and the previous results stay untouched.
        """
        if request is None:
            request = PerceptionStateChangeRequest()

        now = self._tracker.now()
        new_targets = self._tracker.observe(request.markers, request.images, now=now)
        self._tracker.expire(now=now)
        state = self._tracker.believed_present(request.geo)

        results, probable, _ = await asyncio.gather(
            self._dealer.get_perception_results(state),
            self._dealer.predict_perception_targets(state),
            self._side_load(request.markers, request.should_load_artifacts_from),
        )
        # Only commit the diff once every store query has succeeded.
        delta = self._differ.diff(results)

        if new_targets or delta.found or delta.lost:
            _logger.debug(
                "Tick: %d new target(s), %d found, %d lost, %d believed present",
                len(new_targets),
                len(delta.found),
                len(delta.lost),
                len(self._tracker),
            )

        return PerceptionStateChangeResponse(
            new_targets=new_targets,
            found=delta.found,
            lost=delta.lost,
            detectable_images=probable.detectable_images,
        )
