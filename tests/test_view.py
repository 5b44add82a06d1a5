from __future__ import annotations

import asyncio
import json

import pytest

from caremap.config import CareMapConfig, DataSourceConfig
from caremap.render.engine import StyleDocumentEngine
from caremap.state import Absent, Present
from caremap.view import FacilityMapView
from tests._helpers import FakeFetcher, polygon_feature, tsv

FACILITIES = "caps.tsv"
ISOCHRONES = "iso.geojson"

_CONFIG = CareMapConfig(data=DataSourceConfig(facilities=FACILITIES, isochrones=ISOCHRONES))


def _isochrones(*names: str) -> bytes:
    features = [polygon_feature(name, offset=0.1 * i) for i, name in enumerate(names)]
    return json.dumps({"type": "FeatureCollection", "features": features}).encode("utf-16")


def _facilities() -> bytes:
    return tsv(
        [
            ["Hospital A", "R1", "41.4", "2.2", "12", "80", "30", "true"],
            ["", "R2", "41.38", "2.17", "5", "40", "8", "false"],
            ["CAP Raval", "R3", "41.38", "2.17", "x", "40", "8", "false"],
            ["CAP Gracia", "R4", "41.40", "2.15", "7", "55", "4", "false"],
        ]
    )


@pytest.fixture
def loaded_fetcher(fake_fetcher: FakeFetcher) -> FakeFetcher:
    fake_fetcher.payloads[FACILITIES] = _facilities()
    fake_fetcher.payloads[ISOCHRONES] = _isochrones("Hospital A", "CAP Gracia")
    return fake_fetcher


async def _until(predicate, attempts: int = 100) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


@pytest.mark.asyncio
async def test_mount_loads_both_sources(loaded_fetcher: FakeFetcher) -> None:
    async with FacilityMapView(_CONFIG, fetcher=loaded_fetcher) as view:
        await view.wait_loaded()

        assert [f.name for f in view.facilities] == ["Hospital A", "CAP Raval", "CAP Gracia"]
        assert [f.display_index for f in view.facilities] == [1, 2, 3]
        assert view.controller.index is not None
        assert set(view.controller.index) == {"Hospital A", "CAP Gracia"}
        engine = view.context.engine
        assert len(engine.get_source("facilities").data["features"]) == 3
        assert loaded_fetcher.calls[0] == ISOCHRONES


@pytest.mark.asyncio
async def test_click_shows_isochrone_and_popup(loaded_fetcher: FakeFetcher) -> None:
    async with FacilityMapView(_CONFIG, fetcher=loaded_fetcher) as view:
        await view.wait_loaded()
        hospital = view.find("Hospital A")
        assert hospital is not None

        popup = view.click(hospital)

        assert popup.name == "Hospital A"
        assert popup.occupancy_color == "#7f1d1d"
        assert view.controller.layer_state == Present("Hospital A")
        assert view.renderer.isochrone_data()["features"][0]["properties"]["name"] == "Hospital A"
        assert view.selected is hospital


@pytest.mark.asyncio
async def test_engine_click_goes_through_controller(loaded_fetcher: FakeFetcher) -> None:
    async with FacilityMapView(_CONFIG, fetcher=loaded_fetcher) as view:
        await view.wait_loaded()
        engine = view.context.engine
        features = engine.get_source("facilities").data["features"]

        engine.click("facilities-circle", features[2])
        assert view.controller.layer_state == Present("CAP Gracia")

        engine.click("facilities-circle", features[1])
        assert view.controller.layer_state == Absent()
        assert engine.get_source("isochrone") is None
        assert engine.popup is not None
        assert engine.popup[1].name == "CAP Raval"


@pytest.mark.asyncio
async def test_click_before_isochrones_resolve_is_a_miss(loaded_fetcher: FakeFetcher) -> None:
    gate = asyncio.Event()
    loaded_fetcher.gates[ISOCHRONES] = gate

    async with FacilityMapView(_CONFIG, fetcher=loaded_fetcher) as view:
        await view.wait_ready()
        await _until(lambda: bool(view.facilities))
        hospital = view.find("Hospital A")
        assert hospital is not None

        view.click(hospital)
        assert view.controller.layer_state == Absent()

        gate.set()
        await view.wait_loaded()
        view.click(hospital)
        assert view.controller.layer_state == Present("Hospital A")


@pytest.mark.asyncio
async def test_facility_fetch_failure_leaves_empty_layer(fake_fetcher: FakeFetcher) -> None:
    fake_fetcher.payloads[ISOCHRONES] = _isochrones("Hospital A")

    async with FacilityMapView(_CONFIG, fetcher=fake_fetcher) as view:
        await view.wait_loaded()

        assert view.facilities == []
        assert view.context.engine.get_source("facilities").data["features"] == []
        assert len(view.controller.index) == 1


@pytest.mark.asyncio
async def test_isochrone_failure_leaves_empty_index(fake_fetcher: FakeFetcher) -> None:
    fake_fetcher.payloads[FACILITIES] = _facilities()

    async with FacilityMapView(_CONFIG, fetcher=fake_fetcher) as view:
        await view.wait_loaded()
        hospital = view.find("Hospital A")
        assert hospital is not None

        view.click(hospital)

        assert len(view.controller.index) == 0
        assert view.controller.layer_state == Absent()


@pytest.mark.asyncio
async def test_reload_isochrones_builds_a_new_index(loaded_fetcher: FakeFetcher) -> None:
    async with FacilityMapView(_CONFIG, fetcher=loaded_fetcher) as view:
        await view.wait_loaded()
        before = view.controller.index
        loaded_fetcher.payloads[ISOCHRONES] = _isochrones("CAP Raval")

        after = await view.reload_isochrones()

        assert after is not before
        assert view.controller.index is after
        assert set(after) == {"CAP Raval"}
        assert set(before) == {"Hospital A", "CAP Gracia"}


@pytest.mark.asyncio
async def test_reload_facilities_updates_source_in_place(loaded_fetcher: FakeFetcher) -> None:
    async with FacilityMapView(_CONFIG, fetcher=loaded_fetcher) as view:
        await view.wait_loaded()
        loaded_fetcher.payloads[FACILITIES] = tsv([["Hospital A", "R1", "41.4", "2.2", "20", "10", "3", "true"]])

        facilities = await view.reload_facilities()

        source = view.context.engine.get_source("facilities")
        assert [f.name for f in facilities] == ["Hospital A"]
        assert source.updates == 1
        assert len(source.data["features"]) == 1
        assert [layer["id"] for layer in view.context.engine.layers].count("facilities-circle") == 1


@pytest.mark.asyncio
async def test_mount_is_idempotent_and_unmount_releases(loaded_fetcher: FakeFetcher) -> None:
    engines: list[StyleDocumentEngine] = []

    def factory(target, view_config):
        engine = StyleDocumentEngine(target, view_config)
        engines.append(engine)
        return engine

    view = FacilityMapView(_CONFIG, fetcher=loaded_fetcher, engine_factory=factory)
    view.mount("map")
    view.mount("map")
    await view.wait_loaded()
    assert len(engines) == 1

    await view.unmount()

    assert not view.mounted
    assert engines[0].removed
    assert view.facilities == []
    assert view.controller.layer_state == Absent()


@pytest.mark.asyncio
async def test_unmount_cancels_pending_loads(loaded_fetcher: FakeFetcher) -> None:
    loaded_fetcher.gates[ISOCHRONES] = asyncio.Event()
    view = FacilityMapView(_CONFIG, fetcher=loaded_fetcher)
    view.mount()
    await view.wait_ready()

    await view.unmount()

    assert view.controller.index is None
    assert not view.mounted


@pytest.mark.asyncio
async def test_remount_after_unmount_loads_again(loaded_fetcher: FakeFetcher) -> None:
    view = FacilityMapView(_CONFIG, fetcher=loaded_fetcher)
    async with view:
        await view.wait_loaded()

    async with view:
        await view.wait_loaded()
        assert len(view.facilities) == 3
        assert view.context.engine.get_source("isochrone") is None


@pytest.mark.asyncio
async def test_reload_wins_over_slower_initial_load(loaded_fetcher: FakeFetcher) -> None:
    facilities_gate = asyncio.Event()
    isochrones_gate = asyncio.Event()
    loaded_fetcher.gates[FACILITIES] = facilities_gate
    loaded_fetcher.gates[ISOCHRONES] = isochrones_gate

    async with FacilityMapView(_CONFIG, fetcher=loaded_fetcher) as view:
        await view.wait_ready()
        await _until(lambda: loaded_fetcher.calls.count(FACILITIES) == 1)
        loaded_fetcher.payloads[FACILITIES] = tsv([["New A", "R9", "41.4", "2.2", "3", "20", "2", "false"]])
        loaded_fetcher.payloads[ISOCHRONES] = _isochrones("New A")

        await view.reload_facilities()
        await view.reload_isochrones()
        facilities_gate.set()
        isochrones_gate.set()
        for _ in range(20):
            await asyncio.sleep(0)

        assert [f.name for f in view.facilities] == ["New A"]
        assert set(view.controller.index) == {"New A"}
        features = view.context.engine.get_source("facilities").data["features"]
        assert [feature["properties"]["name"] for feature in features] == ["New A"]


@pytest.mark.asyncio
async def test_unmount_after_reload_leaves_no_running_loads(loaded_fetcher: FakeFetcher) -> None:
    gate = asyncio.Event()
    loaded_fetcher.gates[FACILITIES] = gate
    view = FacilityMapView(_CONFIG, fetcher=loaded_fetcher)
    view.mount()
    await view.wait_ready()
    await _until(lambda: loaded_fetcher.calls.count(FACILITIES) == 1)

    initial = [
        task for task in asyncio.all_tasks() if task.get_coro().__qualname__ == "FacilityMapView._load_facilities"
    ]
    assert len(initial) == 1

    await view.reload_facilities()
    await view.unmount()
    gate.set()
    for _ in range(20):
        await asyncio.sleep(0)

    assert initial[0].cancelled()
    assert view.facilities == []
    assert not view.mounted
