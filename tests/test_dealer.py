from __future__ import annotations

import asyncio
from typing import Any

import pytest

from perceptkit.dealer import ArtifactDealer
from perceptkit.models import (
    ARArtifact,
    DetectableImage,
    DetectedImage,
    GeoCoordinates,
    Marker,
    PerceptionResult,
    PerceptionState,
)
from perceptkit.stores import ArtifactStore, LocalArtifactStore


def _seed(store: LocalArtifactStore) -> None:
    for payload in (
        {"arTarget": {"@type": "Barcode", "text": "Barcode1"}, "arContent": "Fake URL"},
        {"arTarget": [{"@type": "Barcode", "text": "Barcode2"}, {"@type": "Unsupported"}], "arContent": "Fake URL"},
        {
            "arTarget": [
                {"@type": "Barcode", "text": "Barcode3"},
                {"@type": "Barcode", "text": "Barcode4"},
                {"@type": "Barcode", "text": "Barcode5"},
            ],
            "arContent": "Fake URL",
        },
        {"arTarget": {"@type": "ARImageTarget", "name": "Id1", "image": "Fake URL"}, "arContent": "Fake URL"},
        {
            "arTarget": {
                "@type": "ARImageTarget",
                "name": "Id2",
                "image": {"@type": "ImageObject", "contentUrl": "FakeUrl"},
            },
            "arContent": "Fake URL",
        },
        {
            "arTarget": {
                "@type": "ARImageTarget",
                "name": "Id3",
                "encoding": [{"@type": "ImageObject", "contentUrl": "FakeUrl"}],
            },
            "arContent": "Fake URL",
        },
    ):
        store.add_artifact(ARArtifact.model_validate(payload))


@pytest.fixture
def dealer() -> ArtifactDealer:
    dealer = ArtifactDealer()
    store = LocalArtifactStore()
    _seed(store)
    dealer.add_artifact_store(store)
    return dealer


def _qr(value: str) -> Marker:
    return Marker(type="qrcode", value=value)


@pytest.mark.asyncio
async def test_ignores_unknown_markers(dealer: ArtifactDealer) -> None:
    assert await dealer.get_perception_results(PerceptionState(markers=[_qr("Unknown Marker")])) == []


@pytest.mark.asyncio
async def test_finds_known_barcodes(dealer: ArtifactDealer) -> None:
    state = PerceptionState(markers=[_qr(f"Barcode{i}") for i in range(1, 6)])
    results = await dealer.get_perception_results(state)
    assert len(results) == 5


@pytest.mark.asyncio
async def test_predicts_all_detectable_images(dealer: ArtifactDealer) -> None:
    probable = await dealer.predict_perception_targets(PerceptionState())
    assert [image.id for image in probable.detectable_images] == ["Id1", "Id2", "Id3"]


@pytest.mark.asyncio
async def test_finds_known_images(dealer: ArtifactDealer) -> None:
    state = PerceptionState(images=[DetectedImage(id=f"Id{i}") for i in range(1, 4)])
    assert len(await dealer.get_perception_results(state)) == 3


@pytest.mark.asyncio
async def test_geo_only_query_is_empty(dealer: ArtifactDealer) -> None:
    state = PerceptionState(geo=GeoCoordinates(latitude=1, longitude=1))
    assert await dealer.get_perception_results(state) == []


@pytest.mark.asyncio
async def test_repeated_queries_return_same_objects(dealer: ArtifactDealer) -> None:
    state = PerceptionState(markers=[_qr("Barcode1")])
    first = await dealer.get_perception_results(state)
    second = await dealer.get_perception_results(state)
    assert first[0] is second[0]
    assert first[0].artifact is second[0].artifact


@pytest.mark.asyncio
async def test_multiple_stores_all_supply_results(dealer: ArtifactDealer) -> None:
    other = LocalArtifactStore()
    other.add_artifact(ARArtifact.model_validate({"arTarget": {"@type": "Barcode", "text": "OtherBarcode"}}))
    other.add_artifact(
        ARArtifact.model_validate({"arTarget": {"@type": "ARImageTarget", "name": "OtherImage", "image": ""}})
    )
    dealer.add_artifact_store(other)

    state = PerceptionState(
        markers=[_qr("Barcode1"), _qr("OtherBarcode")],
        images=[DetectedImage(id="Id1"), DetectedImage(id="OtherImage")],
    )
    assert len(await dealer.get_perception_results(state)) == 4


@pytest.mark.asyncio
async def test_unimplemented_stores_are_ignored(dealer: ArtifactDealer) -> None:
    dealer.add_artifact_store(object())
    dealer.add_artifact_store(ArtifactStore())

    state = PerceptionState(markers=[_qr("Barcode1")], images=[DetectedImage(id="Id1")])
    assert len(await dealer.get_perception_results(state)) == 2
    assert len((await dealer.predict_perception_targets(state)).detectable_images) == 3


class _SlowStore(ArtifactStore):
    def __init__(self, name: str, delay: float, log: list[str]) -> None:
        self.artifact = ARArtifact.model_validate({"arTarget": {"@type": "Barcode", "text": "X"}, "arContent": name})
        self.result = PerceptionResult(target=self.artifact.ar_target[0], artifact=self.artifact)
        self._delay = delay
        self._log = log
        self._name = name

    async def find_relevant_artifacts(self, state: PerceptionState) -> list[PerceptionResult]:
        self._log.append(f"start:{self._name}")
        await asyncio.sleep(self._delay)
        self._log.append(f"end:{self._name}")
        return [self.result]


@pytest.mark.asyncio
async def test_stores_run_concurrently_and_keep_registration_order() -> None:
    log: list[str] = []
    slow = _SlowStore("slow", 0.05, log)
    fast = _SlowStore("fast", 0.0, log)
    dealer = ArtifactDealer()
    dealer.add_artifact_store(slow)
    dealer.add_artifact_store(fast)

    results = await dealer.get_perception_results(PerceptionState(markers=[_qr("X")]))

    assert results == [slow.result, fast.result]
    assert results[0] is slow.result
    # Both started before either finished.
    assert log[:2] == ["start:slow", "start:fast"]


@pytest.mark.asyncio
async def test_duplicates_across_stores_are_preserved() -> None:
    store = LocalArtifactStore()
    store.add_artifact(ARArtifact.model_validate({"arTarget": {"@type": "Barcode", "text": "X"}}))
    dealer = ArtifactDealer()
    dealer.add_artifact_store(store)
    dealer.add_artifact_store(store)

    results = await dealer.get_perception_results(PerceptionState(markers=[_qr("X")]))
    assert len(results) == 2
    assert results[0] is results[1]


class _FailingStore:
    async def find_relevant_artifacts(self, state: Any) -> list[PerceptionResult]:
        raise RuntimeError("store down")

    async def get_detectable_images(self, state: Any) -> list[DetectableImage]:
        raise RuntimeError("store down")


@pytest.mark.asyncio
async def test_store_failure_propagates(dealer: ArtifactDealer) -> None:
    dealer.add_artifact_store(_FailingStore())
    with pytest.raises(RuntimeError, match="store down"):
        await dealer.get_perception_results(PerceptionState(markers=[_qr("Barcode1")]))
    with pytest.raises(RuntimeError, match="store down"):
        await dealer.predict_perception_targets(PerceptionState())
