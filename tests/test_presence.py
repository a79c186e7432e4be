from __future__ import annotations

import pytest

from perceptkit.exceptions import PerceptkitConfigError
from perceptkit.models import DetectedImage, GeoCoordinates, Marker
from perceptkit.presence import PresenceTracker


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _marker(value: str) -> Marker:
    return Marker(type="qr_code", value=value)


def test_first_sighting_is_new_and_refresh_is_not() -> None:
    clock = FakeClock()
    tracker = PresenceTracker(clock=clock)

    assert tracker.observe([_marker("X")]) == [_marker("X")]
    clock.now = 100.0
    assert tracker.observe([_marker("X")]) == []
    assert tracker.markers == [_marker("X")]


def test_duplicate_in_batch_reported_once() -> None:
    tracker = PresenceTracker(clock=FakeClock())
    new = tracker.observe([_marker("X"), _marker("X")], [DetectedImage(id="I"), DetectedImage(id="I")])
    assert new == [_marker("X"), DetectedImage(id="I")]


def test_markers_and_images_use_separate_namespaces() -> None:
    tracker = PresenceTracker(clock=FakeClock())
    tracker.observe([Marker(type="qr_code", value="same")])
    new = tracker.observe(images=[DetectedImage(id="same")])
    assert new == [DetectedImage(id="same")]


def test_target_survives_within_buffer_window() -> None:
    clock = FakeClock()
    tracker = PresenceTracker(buffer_window=2000, clock=clock)
    tracker.observe([_marker("X")])

    clock.now = 2000.0
    assert tracker.expire() == []
    assert tracker.markers == [_marker("X")]

    clock.now = 2000.1
    assert tracker.expire() == [_marker("X")]
    assert tracker.markers == []


def test_observation_in_same_tick_prevents_expiry() -> None:
    clock = FakeClock()
    tracker = PresenceTracker(buffer_window=10, clock=clock)
    tracker.observe([_marker("X")])

    clock.now = 500.0
    tracker.observe([_marker("X")])
    assert tracker.expire() == []
    assert len(tracker) == 1


def test_zero_window_expires_every_miss() -> None:
    clock = FakeClock()
    tracker = PresenceTracker(buffer_window=0, clock=clock)
    tracker.observe(images=[DetectedImage(id="I")])
    assert tracker.expire() == []

    clock.now = 1.0
    assert tracker.expire() == [DetectedImage(id="I")]


def test_expired_target_is_new_again() -> None:
    clock = FakeClock()
    tracker = PresenceTracker(buffer_window=0, clock=clock)
    tracker.observe([_marker("X")])
    clock.now = 1.0
    tracker.expire()
    assert tracker.observe([_marker("X")]) == [_marker("X")]


def test_believed_present_carries_geo() -> None:
    tracker = PresenceTracker(clock=FakeClock())
    tracker.observe([_marker("X")], [DetectedImage(id="I")])
    state = tracker.believed_present(GeoCoordinates(latitude=1, longitude=2))
    assert state.markers == [_marker("X")]
    assert state.images == [DetectedImage(id="I")]
    assert state.geo == GeoCoordinates(latitude=1, longitude=2)


def test_reset_clears_everything() -> None:
    tracker = PresenceTracker(clock=FakeClock())
    tracker.observe([_marker("X")], [DetectedImage(id="I")])
    tracker.reset()
    assert len(tracker) == 0
    assert tracker.observe([_marker("X")]) == [_marker("X")]


def test_negative_window_rejected() -> None:
    tracker = PresenceTracker(clock=FakeClock())
    with pytest.raises(PerceptkitConfigError):
        tracker.buffer_window = -1
    assert tracker.buffer_window == 2000.0


def test_negative_window_rejected_at_construction() -> None:
    with pytest.raises(PerceptkitConfigError):
        PresenceTracker(buffer_window=-5, clock=FakeClock())
