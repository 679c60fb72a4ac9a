from __future__ import annotations

import asyncio

from explorer.session import ExplorerSession
from geo.viewport import Viewport
from layers.filters import MapFilters
from layers.ingest import map_data_from_payload
from layers.types import Station
from lod.clusters import Cluster

from upstream_fakes import FakeUpstream, area, block, map_data_payload

AREAS = "/MapFilter/contractor-areas-geojson/"


def _fake() -> FakeUpstream:
    return FakeUpstream(
        {
            AREAS + "1": [area(1, -131, 9, [block(11, -131, 9)]), area(2, -126, 11)],
            AREAS + "2": [area(3, 59, -31, [block(31, 59, -31, "inactive")])],
        }
    )


def _session(fake: FakeUpstream) -> ExplorerSession:
    session = ExplorerSession(client=fake.client())
    raw = map_data_payload()
    session.set_data(map_data_from_payload(raw["contractors"], raw["cruises"]))
    return session


def _station_ids(items) -> set:
    out: set = set()
    for it in items:
        if isinstance(it, Station):
            out.add(it.station_id)
    return out


def test_clusters_follow_the_viewport():
    session = _session(_fake())
    session.set_layout(1024, 768)

    low = session.set_viewport(Viewport(longitude=-130.0, latitude=10.0, zoom=3.0))
    clusters = [it for it in low if isinstance(it, Cluster)]
    assert [c.count for c in clusters] == [2]
    assert session.store.user_navigated

    high = session.set_viewport(Viewport(longitude=-130.005, latitude=10.005, zoom=12.0))
    assert _station_ids(high) == {100, 101}
    assert session.visible_clusters is high


def test_filters_recompute_clusters_and_fit_the_camera():
    fake = _fake()

    async def run():
        session = _session(fake)
        session.set_layout(1024, 768)
        session.set_viewport(Viewport(longitude=0.0, latitude=0.0, zoom=16.0))
        move = await session.set_filters(MapFilters(location_id="indian-ocean"))
        return session, move

    session, move = asyncio.run(run())
    assert move.command.reason == "region:indian-ocean"
    assert _station_ids(session.visible_stations()) == {200}
    assert [a.area_id for a in session.visible_areas()] == [3]
    # The location filter narrows what is shown, not which contractors are loaded.
    assert fake.count(AREAS + "1") == 1
    assert fake.count(AREAS + "2") == 1


def test_selecting_a_contractor_loads_only_its_layers_and_fits_them():
    fake = _fake()

    async def run():
        session = _session(fake)
        state = await session.select_contractor(1)
        return session, state

    session, state = asyncio.run(run())
    assert state.selected_contractor_id == 1
    assert fake.count(AREAS + "1") == 1
    assert fake.count(AREAS + "2") == 0
    assert session.engine.history[-1].reason == "contractor:1"
    assert {a.area_id for a in session.visible_areas()} == {1, 2}
    assert session.map_summary().area_count == 2


def test_contractor_fit_waits_for_layers_that_failed_to_load():
    fake = FakeUpstream({AREAS + "1": 503})

    async def run():
        session = _session(fake)
        session.set_viewport(Viewport(longitude=5.0, latitude=5.0, zoom=6.0))
        await session.select_contractor(1)
        assert session.actuator.pending_contractor_id == 1
        fake.routes[AREAS + "1"] = [area(1, -131, 9)]
        await session.load_layers()
        return session

    session = asyncio.run(run())
    assert session.actuator.pending_contractor_id is None
    assert session.engine.history[-1].reason == "contractor:1"


def test_reset_filters_clears_selection_and_navigation():
    fake = _fake()

    async def run():
        session = _session(fake)
        session.set_viewport(Viewport(longitude=5.0, latitude=5.0, zoom=6.0))
        await session.select_contractor(2)
        move = await session.reset_filters()
        return session, move

    session, move = asyncio.run(run())
    assert move.command.reason == "world"
    assert session.selected_contractor_id is None
    assert session.filters.is_empty()
    assert not session.store.user_navigated


def test_expand_cluster_flies_to_its_expansion_zoom():
    async def run():
        session = _session(_fake())
        session.set_layout(1024, 768)
        items = session.set_viewport(Viewport(longitude=-130.0, latitude=10.0, zoom=3.0))
        cluster = next(it for it in items if isinstance(it, Cluster))
        return cluster, session.expand_cluster(cluster.id)

    cluster, move = asyncio.run(run())
    assert move.command.kind == "fly_to"
    assert move.command.zoom == cluster.expansion_zoom
    assert move.command.center == (cluster.longitude, cluster.latitude)


def test_geojson_export_covers_visible_areas():
    fake = _fake()

    async def run():
        session = _session(fake)
        await session.load_layers()
        return session.areas_geojson()

    fc = asyncio.run(run())
    layers = [f["properties"]["layer"] for f in fc["features"]]
    assert layers.count("area") == 3
    assert layers.count("block") == 2
    inactive = [f for f in fc["features"] if f["properties"].get("status") == "inactive"]
    assert inactive[0]["properties"]["color"] == "#6b7280"
