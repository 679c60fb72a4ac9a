from __future__ import annotations

from datetime import datetime, timezone

from shapely.geometry import box

from explorer.export import areas_feature_collection, export_filename, rows_to_csv
from explorer.stats import summarize
from layers.ingest import map_data_from_payload
from layers.types import AreaLayer, BlockLayer, BlockStatus

from upstream_fakes import map_data_payload


def test_csv_quotes_strings_and_doubles_embedded_quotes():
    rows = [
        {"name": 'Station "A"', "depth": 4200, "note": "deep, cold"},
        {"name": "B", "depth": 3100.5, "note": None},
    ]
    out = rows_to_csv(rows)
    lines = out.split("\n")
    assert lines[0] == '"name","depth","note"'
    assert lines[1] == '"Station ""A""",4200,"deep, cold"'
    assert lines[2].startswith('"B",3100.5,')
    assert not out.endswith("\n")


def test_csv_of_no_rows_is_empty():
    assert rows_to_csv([]) == ""


def test_export_filename_is_timestamped():
    now = datetime(2024, 5, 1, 12, 30, 15, 123000, tzinfo=timezone.utc)
    name = export_filename("map-areas", "geojson", now=now)
    assert name.startswith("map-areas-2024-05-01T12-30-15-123000")
    assert name.endswith(".geojson")
    assert ":" not in name


def test_feature_collection_has_area_and_block_features():
    a = AreaLayer(
        contractor_id=1,
        area_id=2,
        area_name="Area 2",
        geometry=box(0, 0, 2, 2),
        center=(1.0, 1.0),
        total_area_size_km2=500.0,
        blocks=(
            BlockLayer(
                block_id=3,
                block_name="B3",
                status=BlockStatus.reserved,
                geometry=box(0, 0, 1, 1),
                center=(0.5, 0.5),
                area_size_km2=50.0,
            ),
        ),
    )
    fc = areas_feature_collection([a])
    assert fc["type"] == "FeatureCollection"
    area_f, block_f = fc["features"]
    assert area_f["geometry"]["type"] == "Polygon"
    assert area_f["properties"]["areaName"] == "Area 2"
    assert block_f["properties"]["status"] == "reserved"
    assert block_f["properties"]["color"] == "#3b82f6"


def test_summary_counts():
    raw = map_data_payload()
    data = map_data_from_payload(raw["contractors"], raw["cruises"])
    areas = [
        AreaLayer(
            contractor_id=1,
            area_id=i,
            area_name=f"A{i}",
            geometry=box(i, 0, i + 1, 1),
            center=None,
            total_area_size_km2=size,
        )
        for i, size in enumerate([100.0, None, 50.0])
    ]
    summary = summarize(data, areas)
    assert summary.contractor_count == 2
    assert summary.area_count == 3
    assert summary.cruise_count == 2
    assert summary.station_count == 4
    assert summary.total_area_size_km2 == 150.0
    assert summary.contract_types == {"PMN": 1, "PMS": 1}

    only_one = summarize(data, areas, selected_contractor_id="2")
    assert only_one.sponsoring_states == {"China": 1}
    assert only_one.as_dict()["contractTypes"] == {"PMS": 1}
