from __future__ import annotations

import json

import pytest

from layers.ingest import areas_from_payload, map_data_from_payload, parse_geometry
from layers.types import BlockStatus

from upstream_fakes import area, block, map_data_payload, square


def test_parse_geometry_accepts_text_feature_collection_and_bare_geometry():
    bare = square(10, 10)
    assert parse_geometry(bare).geom_type == "Polygon"
    assert parse_geometry(json.dumps(bare)).bounds == (10.0, 10.0, 11.0, 11.0)
    assert parse_geometry({"type": "Feature", "geometry": bare, "properties": {}}).area == 1.0

    fc = {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "geometry": square(0, 0)},
            {"type": "Feature", "geometry": None},
            {"type": "Feature", "geometry": square(5, 5)},
        ],
    }
    merged = parse_geometry(fc)
    assert merged.geom_type == "MultiPolygon"
    assert merged.bounds == (0.0, 0.0, 6.0, 6.0)


@pytest.mark.parametrize(
    "raw",
    [
        None,
        "",
        "{not json",
        "[1, 2]",
        {"type": "Polygon", "coordinates": []},
        {"type": "FeatureCollection", "features": []},
        {"type": "LineString", "coordinates": [[0, 0]]},
    ],
)
def test_parse_geometry_rejects_unusable_input(raw):
    with pytest.raises(ValueError):
        parse_geometry(raw)


def test_parse_geometry_repairs_self_intersecting_polygon():
    bowtie = {
        "type": "Polygon",
        "coordinates": [[[0, 0], [2, 2], [2, 0], [0, 2], [0, 0]]],
    }
    geom = parse_geometry(bowtie)
    assert geom.is_valid
    assert geom.area > 0


def test_areas_from_payload_normalizes_and_drops_malformed_entries():
    payload = [
        area(1, -130, 10, [block(11, -130, 10), block(12, -129, 10, "Pending")]),
        area(2, -125, 12, [block(21, -125, 12, "reserved")], geo_as_string=True),
        {"areaId": 3, "areaName": "Broken", "geoJson": "{oops"},
        area(4, -120, 14, [block(41, -120, 14, "mystery"), {"blockId": 42, "status": "active"}]),
    ]
    areas = areas_from_payload(7, payload)

    assert [a.area_id for a in areas] == [1, 2, 4]
    assert all(a.contractor_id == 7 for a in areas)
    assert [b.status for b in areas[0].blocks] == [BlockStatus.active, BlockStatus.pending]
    assert areas[1].geometry.geom_type == "Polygon"
    # Unknown status and missing geometry are both dropped.
    assert areas[2].blocks == ()
    assert areas[0].center is not None


def test_areas_from_payload_requires_a_list():
    with pytest.raises(ValueError):
        areas_from_payload(1, {"areas": []})


def test_block_status_is_a_closed_enumeration():
    assert BlockStatus.parse(" ACTIVE ") is BlockStatus.active
    assert BlockStatus.inactive.color == "#6b7280"
    assert {s.color for s in BlockStatus} == {"#059669", "#d97706", "#6b7280", "#3b82f6"}
    with pytest.raises(ValueError):
        BlockStatus.parse("unknown")
    with pytest.raises(ValueError):
        BlockStatus.parse(None)


def test_map_data_from_payload_skips_invalid_rows():
    raw = map_data_payload()
    raw["contractors"].append({"contractorName": "no id"})
    raw["cruises"].append({"cruiseId": 99})
    data = map_data_from_payload(raw["contractors"], raw["cruises"])

    assert [c.contractor_id for c in data.contractors] == [1, 2]
    assert [c.cruise_id for c in data.cruises] == [10, 20]
    assert data.cruise("10").cruise_name == "CC-2021"
    station = data.station(101)
    assert station is not None and station.cruise_id == 10
    assert data.station("nope") is None
