from __future__ import annotations

import pytest

from geo.regions import clear_region_cache, get_region, get_regions, is_point_in_region
from layers.filters import MapFilters, visible_contractor_ids, visible_stations
from layers.ingest import map_data_from_payload

from upstream_fakes import map_data_payload


@pytest.fixture
def data():
    raw = map_data_payload()
    return map_data_from_payload(raw["contractors"], raw["cruises"])


@pytest.fixture
def custom_regions(tmp_path, monkeypatch):
    path = tmp_path / "regions.yaml"
    path.write_text(
        "regions:\n"
        "  - id: dateline\n"
        "    name: Date line box\n"
        "    bounds: {minLat: -10, maxLat: 10, minLon: 170, maxLon: -170}\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("EXPLORER_REGIONS_PATH", str(path))
    clear_region_cache()
    yield
    clear_region_cache()


def test_default_region_table_loads():
    regions = get_regions()
    assert "clarion-clipperton" in regions
    assert regions["clarion-clipperton"].bounds.max_lon == -115.0
    assert get_region("all") is None
    assert get_region("") is None
    assert get_region("atlantis") is None


def test_point_in_region():
    assert is_point_in_region(10.0, -130.0, "clarion-clipperton")
    assert not is_point_in_region(25.0, -130.0, "clarion-clipperton")
    assert not is_point_in_region(10.0, -130.0, "unknown-region")


def test_region_crossing_the_date_line(custom_regions):
    assert set(get_regions()) == {"dateline"}
    assert is_point_in_region(0.0, 175.0, "dateline")
    assert is_point_in_region(0.0, -175.0, "dateline")
    assert not is_point_in_region(0.0, 0.0, "dateline")


def test_invalid_region_table_is_rejected(tmp_path, monkeypatch):
    path = tmp_path / "regions.yaml"
    path.write_text("- just a list\n", encoding="utf-8")
    monkeypatch.setenv("EXPLORER_REGIONS_PATH", str(path))
    clear_region_cache()
    try:
        with pytest.raises(ValueError):
            get_regions()
    finally:
        clear_region_cache()


def test_unfiltered_stations_are_all_stations(data):
    assert {s.station_id for s in visible_stations(data, MapFilters())} == {100, 101, 102, 200}
    assert MapFilters(contract_type="all", location_id="").is_empty()


def test_contractor_filters_narrow_stations(data):
    pmn = visible_stations(data, MapFilters(contract_type="PMN"))
    assert {s.station_id for s in pmn} == {100, 101, 102}

    china = visible_stations(data, MapFilters(sponsoring_state="China", contractual_year=2011))
    assert {s.station_id for s in china} == {200}

    nobody = visible_stations(data, MapFilters(contractual_year=1999))
    assert nobody == []


def test_location_filter_narrows_by_region(data):
    stations = visible_stations(data, MapFilters(location_id="clarion-clipperton"))
    assert {s.station_id for s in stations} == {100, 101, 102}
    stations = visible_stations(data, MapFilters(location_id="indian-ocean"))
    assert {s.station_id for s in stations} == {200}


def test_selected_contractor_wins_over_filters(data):
    filters = MapFilters(contract_type="PMN")
    assert visible_contractor_ids(data, filters, selected_contractor_id=2) == frozenset({"2"})
    assert {s.station_id for s in visible_stations(data, filters, 2)} == {200}
