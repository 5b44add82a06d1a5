from __future__ import annotations

import logging

import pytest

from caremap.config import CorrelationKey, MapViewConfig
from caremap.controller import InteractionController, impacted_population
from caremap.correlation import CorrelationIndex
from caremap.exceptions import LookupMiss
from caremap.render import MapContext, MapRenderer
from caremap.state import Absent, Present, SelectionEvent, SelectionSource
from tests._helpers import facility, polygon


def _controller(**kwargs) -> tuple[InteractionController, MapRenderer]:
    context = MapContext(MapViewConfig())
    context.open("map")
    renderer = MapRenderer(context)
    return InteractionController(renderer, **kwargs), renderer


def test_click_with_match_shows_exactly_that_polygon() -> None:
    controller, renderer = _controller()
    hospital = polygon("Hospital A")
    controller.set_index(CorrelationIndex.build([hospital, polygon("CAP Raval", offset=0.1)]))

    controller.on_facility_click(facility("Hospital A", occupancy_percent=80.0))

    assert controller.layer_state == Present("Hospital A")
    assert renderer.isochrone_data() == {"type": "FeatureCollection", "features": [hospital.to_feature()]}


def test_second_hit_replaces_the_polygon() -> None:
    controller, renderer = _controller()
    raval = polygon("CAP Raval", offset=0.1)
    controller.set_index(CorrelationIndex.build([polygon("Hospital A"), raval]))

    controller.on_facility_click(facility("Hospital A", 1))
    controller.on_facility_click(facility("CAP Raval", 2))

    assert controller.layer_state == Present("CAP Raval")
    assert renderer.isochrone_data() == raval.to_feature_collection()
    assert renderer.engine.get_source("isochrone").updates == 1


def test_miss_after_hit_removes_the_layer(caplog: pytest.LogCaptureFixture) -> None:
    controller, renderer = _controller()
    controller.set_index(CorrelationIndex.build([polygon("Hospital A")]))
    controller.on_facility_click(facility("Hospital A", 1))

    with caplog.at_level(logging.WARNING, logger="caremap.controller"):
        popup = controller.on_facility_click(facility("Hospital B", 2))

    assert controller.layer_state == Absent()
    assert renderer.isochrone_data() is None
    assert renderer.engine.get_layer("isochrone-fill") is None
    assert "No matching isochrone found for 'Hospital B'" in caplog.text
    assert popup.name == "Hospital B"
    assert controller.selected is not None and controller.selected.name == "Hospital B"


def test_miss_without_layer_is_a_no_op() -> None:
    controller, renderer = _controller()
    controller.set_index(CorrelationIndex.build([polygon("Hospital A")]))

    controller.on_facility_click(facility("Hospital B"))

    assert controller.layer_state == Absent()
    assert renderer.engine.get_source("isochrone") is None


def test_click_before_index_is_built_behaves_as_miss() -> None:
    controller, renderer = _controller()

    popup = controller.on_facility_click(facility("Hospital A"))

    assert controller.layer_state == Absent()
    assert renderer.isochrone_data() is None
    assert popup.name == "Hospital A"


def test_resolve_raises_lookup_miss() -> None:
    controller, _ = _controller()
    controller.set_index(CorrelationIndex.build([]))

    with pytest.raises(LookupMiss) as excinfo:
        controller.resolve(facility("Hospital A"))

    assert excinfo.value.key == "Hospital A"


def test_register_id_correlation() -> None:
    controller, _ = _controller(correlation_key=CorrelationKey.REGISTER_ID)
    by_id = polygon("REG-7")
    controller.set_index(CorrelationIndex.build([by_id]))

    assert controller.resolve(facility("Hospital A", 7)) is by_id


def test_popup_content_is_stable_and_shown_on_engine() -> None:
    controller, renderer = _controller(details_url="https://example.org/details")
    clinic = facility("Hospital A", occupancy_percent=62.0, current_staff_count=14.0, wait_time_minutes=9.0)

    first = controller.on_facility_click(clinic)
    second = controller.on_facility_click(clinic)

    assert first == second
    assert first.facility_id == "REG-1"
    assert first.occupancy_color == "#854d0e"
    assert first.current_staff_count == 14.0
    assert first.wait_time_minutes == 9.0
    assert first.details_url == "https://example.org/details"
    assert 0 <= first.impacted_population < 1000
    assert renderer.engine.popup == ((2.2, 41.4), first)


def test_impacted_population_is_deterministic() -> None:
    clinic = facility("Hospital A")

    assert impacted_population(clinic) == impacted_population(facility("Hospital A"))
    assert 0 <= impacted_population(clinic) < 1000


def test_population_source_is_injectable() -> None:
    controller, _ = _controller(population=lambda _facility: 321)

    assert controller.popup_content(facility("Hospital A")).impacted_population == 321


def test_selection_listeners_see_map_and_list_sources() -> None:
    controller, renderer = _controller()
    events: list[SelectionEvent] = []
    unsubscribe = controller.subscribe(events.append)

    controller.on_facility_click(facility("Hospital A", 1))
    controller.select(facility("CAP Raval", 2))
    unsubscribe()
    controller.select(facility("Hospital A", 1))

    assert [(event.facility.name, event.source) for event in events] == [
        ("Hospital A", SelectionSource.MAP),
        ("CAP Raval", SelectionSource.LIST),
    ]
    assert controller.selected is not None and controller.selected.name == "Hospital A"


def test_list_selection_leaves_map_untouched() -> None:
    controller, renderer = _controller()
    controller.set_index(CorrelationIndex.build([polygon("Hospital A")]))

    controller.select(facility("Hospital A"))

    assert controller.layer_state == Absent()
    assert renderer.engine.popup is None


def test_failing_listener_does_not_break_click() -> None:
    controller, _ = _controller()
    seen: list[str] = []

    def _boom(_event: SelectionEvent) -> None:
        raise RuntimeError("listener failed")

    controller.subscribe(_boom)
    controller.subscribe(lambda event: seen.append(event.facility.name))

    controller.on_facility_click(facility("Hospital A"))

    assert seen == ["Hospital A"]
