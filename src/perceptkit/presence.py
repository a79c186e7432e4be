"""Debounced presence tracking for markers and images.

Detectors are noisy: a target in plain view can drop out of a handful of
frames.  The tracker keeps a last-seen timestamp per target identity and
only forgets a target once it has gone unobserved for longer than the
buffer window.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Generic, TypeVar

from perceptkit.config import DEFAULT_BUFFER_WINDOW_MS
from perceptkit.exceptions import PerceptkitConfigError
from perceptkit.models.perception import PerceptionState, Target
from perceptkit.models.targets import DetectedImage, GeoCoordinates, Marker, generate_marker_id

_logger = logging.getLogger(__name__)

TargetT = TypeVar("TargetT", Marker, DetectedImage)


def monotonic_ms() -> float:
    """Monotonic clock in milliseconds."""
    return time.monotonic() * 1000.0


@dataclass(slots=True)
class PresenceEntry(Generic[TargetT]):
    """Last sighting of one target identity."""

    target_key: str
    target: TargetT
    timestamp: float


def _expire(entries: dict[str, PresenceEntry[TargetT]], now: float, window: float) -> list[TargetT]:
    stale = [key for key, entry in entries.items() if now - entry.timestamp > window]
    return [entries.pop(key).target for key in stale]


class PresenceTracker:
    """Track which targets are believed present.

    Markers are keyed by :func:`generate_marker_id`, images by their id; the
    two namespaces are independent.
    """

    def __init__(
        self,
        *,
        buffer_window: float = DEFAULT_BUFFER_WINDOW_MS,
        clock: Callable[[], float] = monotonic_ms,
    ) -> None:
        self._clock = clock
        self._buffer_window = 0.0
        self.buffer_window = buffer_window
        self._markers: dict[str, PresenceEntry[Marker]] = {}
        self._images: dict[str, PresenceEntry[DetectedImage]] = {}

    @property
    def buffer_window(self) -> float:
        """Milliseconds a target survives without being observed."""
        return self._buffer_window

    @buffer_window.setter
    def buffer_window(self, ms: float) -> None:
        if ms < 0:
            raise PerceptkitConfigError("buffer_window must be >= 0")
        self._buffer_window = float(ms)

    def now(self) -> float:
        return self._clock()

    @property
    def markers(self) -> list[Marker]:
        return [entry.target for entry in self._markers.values()]

    @property
    def images(self) -> list[DetectedImage]:
        return [entry.target for entry in self._images.values()]

    def __len__(self) -> int:
        return len(self._markers) + len(self._images)

    def observe(
        self,
        markers: Iterable[Marker] = (),
        images: Iterable[DetectedImage] = (),
        *,
        now: float | None = None,
    ) -> list[Target]:
        """Record one batch of sightings.

        Returns the targets seen for the first time, in input order.  A
        target repeated within the batch is reported once.
        """
        if now is None:
            now = self._clock()
        new_targets: list[Target] = []

        for marker in markers:
            key = generate_marker_id(marker)
            entry = self._markers.get(key)
            if entry is None:
                self._markers[key] = PresenceEntry(key, marker, now)
                new_targets.append(marker)
            else:
                entry.target = marker
                entry.timestamp = now

        for image in images:
            entry_img = self._images.get(image.id)
            if entry_img is None:
                self._images[image.id] = PresenceEntry(image.id, image, now)
                new_targets.append(image)
            else:
                entry_img.target = image
                entry_img.timestamp = now

        return new_targets

    def expire(self, *, now: float | None = None) -> list[Target]:
        """Drop every target unseen for longer than the buffer window."""
        if now is None:
            now = self._clock()
        expired: list[Target] = []
        expired.extend(_expire(self._markers, now, self._buffer_window))
        expired.extend(_expire(self._images, now, self._buffer_window))
        if expired:
            _logger.debug("Expired %d target(s) after %.0f ms", len(expired), self._buffer_window)
        return expired

    def believed_present(self, geo: GeoCoordinates | None = None) -> PerceptionState:
        """The debounced query context for content stores."""
        return PerceptionState(markers=self.markers, geo=geo, images=self.images)

    def reset(self) -> None:
        self._markers.clear()
        self._images.clear()
