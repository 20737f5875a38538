from __future__ import annotations

import asyncio
import json

from geojson_samples import DISTRICTS, viewer_config_dict, write_data_dir
from mapview.highlight import HIGHLIGHT_KEY
from search.locator import SearchCriteria
from viewer.controller import (
    MSG_AUTOCOMPLETE_READY,
    MSG_DISTRICT_REQUIRED,
    MSG_FOUND,
    MSG_NOT_FOUND,
    ViewerController,
    build_registry,
)
from viewer.types import ViewerConfig


def test_search_highlights_and_zooms(controller):
    outcome = asyncio.run(
        controller.on_search(SearchCriteria(district="iquitos", region="loreto", province=""), {})
    )
    assert not outcome.error
    assert outcome.feature is not None
    assert outcome.feature.props["DISTRITO"] == "Iquitos"
    assert outcome.status == "✅ Distrito resaltado: Iquitos"
    assert controller.highlight.current.feature is outcome.feature
    # View moved from the country-wide default onto the district.
    assert controller.surface.zoom > 6.0
    assert controller.surface.center["lon"] < -73.0
    assert ("fit", "") in controller.surface.ops


def test_search_with_wrong_region_reports_not_found(controller):
    outcome = asyncio.run(
        controller.on_search(SearchCriteria(district="iquitos", region="cusco"), {})
    )
    assert outcome.feature is None
    assert not outcome.error
    assert outcome.status == MSG_NOT_FOUND
    assert controller.highlight.current is None


def test_search_without_district_still_syncs_layers(controller):
    outcome = asyncio.run(
        controller.on_search(SearchCriteria(district="  ", region="lima"), {"anp": True})
    )
    assert outcome.status == MSG_DISTRICT_REQUIRED
    assert outcome.operations == [("add", "anp")]
    # No search was run, so the districts layer was never needed.
    assert not controller.registry.is_loaded("distritos")


def test_second_search_replaces_highlight(controller):
    async def run():
        await controller.on_search(SearchCriteria(district="iquitos"), {})
        await controller.on_search(SearchCriteria(district="cusco"), {})

    asyncio.run(run())
    overlays = [layer for layer in controller.surface.layers() if layer.key == HIGHLIGHT_KEY]
    assert len(overlays) == 1
    assert overlays[0].label == "Cusco"


def test_not_found_keeps_previous_highlight(controller):
    async def run():
        await controller.on_search(SearchCriteria(district="iquitos"), {})
        await controller.on_search(SearchCriteria(district="arequipa"), {})

    asyncio.run(run())
    assert controller.highlight.current.label == "Iquitos"
    assert controller.status.message == MSG_NOT_FOUND


def test_load_error_becomes_status_message(viewer_config, tmp_path):
    ctl = ViewerController(viewer_config, base_dir=tmp_path / "missing")
    outcome = asyncio.run(ctl.on_search(SearchCriteria(district="iquitos"), {}))
    assert outcome.error
    assert outcome.status.startswith("Error: No se pudo cargar: data_distritos.geojson")
    assert ctl.registry.status()["distritos"] == "not_loaded"


def test_unknown_layer_key_becomes_status_message(controller):
    outcome = asyncio.run(controller.on_toggle({"rios": True}))
    assert outcome.error
    assert outcome.status == "Error: No existe capa registrada: rios"


def test_toggle_reconciles_layers(controller):
    async def run():
        a = await controller.on_toggle({"anp": True, "za": True})
        b = await controller.on_toggle({"anp": True, "za": True})
        c = await controller.on_toggle({"anp": False, "za": True})
        return a, b, c

    a, b, c = asyncio.run(run())
    assert a.operations == [("add", "anp"), ("add", "za")]
    assert b.operations == []
    assert c.operations == [("remove", "anp")]


def test_on_ready_builds_suggestion_lists_once(controller):
    lists = asyncio.run(controller.on_ready())
    assert lists["regions"] == ["Cusco", "Lima", "Loreto"]
    assert lists["provinces"] == ["Cusco", "Lima", "Maynas", "Melgar"]
    assert lists["districts"] == ["Cusco", "Iquitos", "Nuñoa", "San Juan de Lurigancho", "Santa Rosa"]
    assert controller.status.message == MSG_AUTOCOMPLETE_READY

    again = asyncio.run(controller.on_ready())
    assert again is lists
    assert controller.status.history.count("Cargando autocompletar...") == 1


def test_on_ready_reports_load_errors(viewer_config, tmp_path):
    ctl = ViewerController(viewer_config, base_dir=tmp_path / "missing")
    lists = asyncio.run(ctl.on_ready())
    assert lists == {}
    assert ctl.status.message.startswith("❌ Autocomplete error: ")


def test_set_basemap(controller):
    assert controller.set_basemap("imagery").max_zoom == 19
    assert controller.surface.basemap_id == "imagery"
    assert controller.set_basemap("satellite") is None
    assert controller.surface.basemap_id == "imagery"
    assert controller.status.message == "Error: Basemap desconocido: satellite"


def _config_with_districts(root, rows) -> ViewerConfig:
    data_dir = write_data_dir(root)
    (data_dir / "data_distritos.geojson").write_text(
        json.dumps({"type": "FeatureCollection", "features": rows}), encoding="utf-8"
    )
    return ViewerConfig.model_validate(viewer_config_dict(data_dir))


def test_malformed_geometry_becomes_status_and_keeps_highlight(tmp_path):
    rows = [
        *DISTRICTS["features"],
        {
            "type": "Feature",
            "properties": {"DISTRITO": "Quebrada Honda"},
            "geometry": {"type": "Polygon", "coordinates": [[0, 0], [1, 1], [1, 0], [0, 0]]},
        },
    ]
    ctl = ViewerController(_config_with_districts(tmp_path / "peru", rows))

    async def run():
        first = await ctl.on_search(SearchCriteria(district="iquitos"), {})
        second = await ctl.on_search(SearchCriteria(district="quebrada"), {"anp": True})
        return first, second

    first, second = asyncio.run(run())
    assert first.status == MSG_FOUND.format(name="Iquitos")
    assert second.error
    assert second.status.startswith("Error: ")
    assert ctl.status.message == second.status
    assert ctl.highlight.current.label == "Iquitos"
    overlays = [layer for layer in ctl.surface.layers() if layer.key == HIGHLIGHT_KEY]
    assert len(overlays) == 1

    # The session keeps working after the failure.
    third = asyncio.run(ctl.on_search(SearchCriteria(district="cusco"), {}))
    assert third.status == MSG_FOUND.format(name="Cusco")


def test_unexpected_sync_failure_becomes_status(controller, monkeypatch):
    async def broken_load(key):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(controller.registry, "load", broken_load)
    outcome = asyncio.run(controller.on_toggle({"anp": True}))
    assert outcome.error
    assert outcome.status == "Error: disk on fire"

    lists = asyncio.run(controller.on_ready())
    assert lists == {}
    assert controller.status.message == "❌ Autocomplete error: disk on fire"


def test_sessions_share_one_registry(viewer_config):
    registry = build_registry(viewer_config)
    a = ViewerController(viewer_config, registry=registry)
    b = ViewerController(viewer_config, registry=registry)

    asyncio.run(a.on_search(SearchCriteria(district="iquitos"), {"anp": True}))
    assert b.registry is a.registry
    assert registry.is_loaded("distritos")
    assert b.highlight.current is None
    assert b.surface.layers() == []
