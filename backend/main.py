import logging
from typing import Any, Optional, Union

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from api.payloads import (
    areas_payload,
    bounds_payload,
    clusters_payload,
    selection_payload,
    station_payload,
)
from explorer.config import log_level
from explorer.export import export_filename, rows_to_csv
from explorer.singleton import get_session
from geo.regions import get_regions
from geo.viewport import Viewport
from layers.filters import MapFilters
from layers.ingest import map_data_from_payload

logging.basicConfig(
    level=log_level(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ApiLayout(BaseModel):
    width: int = Field(gt=0)
    height: int = Field(gt=0)


class ApiViewport(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    longitude: float
    latitude: float = Field(ge=-90.0, le=90.0)
    zoom: float = Field(ge=0.0)
    bearing: float = 0.0
    pitch: float = 0.0
    # Set by the client while it animates a queued camera command.
    programmatic: bool = False


class ApiMapData(BaseModel):
    contractors: list[dict[str, Any]] = Field(default_factory=list)
    cruises: list[dict[str, Any]] = Field(default_factory=list)


class ApiFilters(BaseModel):
    contractType: Optional[str] = None
    sponsoringState: Optional[str] = None
    contractualYear: Optional[int] = None
    locationId: Optional[str] = None


class ApiContractorSelection(BaseModel):
    contractorId: Optional[Union[int, str]] = None


class ApiHover(BaseModel):
    stationId: Optional[Union[int, str]] = None
    show: bool = True


class ApiSummaryPanel(BaseModel):
    show: bool


class ApiCsvExport(BaseModel):
    prefix: str = "export"
    rows: list[dict[str, Any]]


def _clusters_response() -> dict[str, Any]:
    session = get_session()
    return {
        "bounds": bounds_payload(session.bounds()),
        "clusters": clusters_payload(session.visible_clusters),
    }


def _selection_response() -> dict[str, Any]:
    coord = get_session().selection
    return selection_payload(coord.state, coord.active_toast())


def _camera_response(move) -> Optional[dict[str, Any]]:
    return move.command.as_dict() if move is not None else None


@app.get("/regions")
def regions():
    return [
        {"id": r.id, "name": r.name, "bounds": r.bounds.as_dict()}
        for r in get_regions().values()
    ]


@app.post("/session/layout")
def set_layout(body: ApiLayout):
    get_session().set_layout(body.width, body.height)
    return _clusters_response()


@app.post("/session/viewport")
def set_viewport(body: ApiViewport):
    try:
        viewport = Viewport(
            longitude=body.longitude,
            latitude=body.latitude,
            zoom=body.zoom,
            bearing=body.bearing,
            pitch=body.pitch,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    session = get_session()
    session.set_viewport(viewport, programmatic=body.programmatic)
    out = _clusters_response()
    out["userNavigated"] = session.store.user_navigated
    return out


@app.get("/session/clusters")
def clusters():
    return _clusters_response()


@app.post("/session/clusters/{cluster_id}/expand")
async def expand_cluster(cluster_id: int):
    try:
        move = get_session().expand_cluster(cluster_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=f"Unknown cluster {cluster_id}") from e
    return _camera_response(move)


@app.get("/session/clusters/{cluster_id}/leaves")
def cluster_leaves(cluster_id: int):
    try:
        leaves = get_session().clusters.leaves(cluster_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=f"Unknown cluster {cluster_id}") from e
    return [station_payload(s) for s in leaves]


@app.post("/session/data")
def set_data(body: ApiMapData):
    data = map_data_from_payload(body.contractors, body.cruises)
    get_session().set_data(data)
    return {
        "contractors": len(data.contractors),
        "cruises": len(data.cruises),
        "stations": sum(len(c.stations) for c in data.cruises),
    }


@app.post("/session/filters")
async def set_filters(body: ApiFilters):
    filters = MapFilters(
        contract_type=body.contractType,
        sponsoring_state=body.sponsoringState,
        contractual_year=body.contractualYear,
        location_id=body.locationId,
    )
    move = await get_session().set_filters(filters)
    out = _clusters_response()
    out["camera"] = _camera_response(move)
    return out


@app.post("/session/filters/reset")
async def reset_filters():
    move = await get_session().reset_filters()
    out = _clusters_response()
    out["camera"] = _camera_response(move)
    return out


@app.post("/session/contractor")
async def select_contractor(body: ApiContractorSelection):
    await get_session().select_contractor(body.contractorId)
    return _selection_response()


@app.post("/session/layers/load")
async def load_layers():
    session = get_session()
    await session.load_layers()
    areas = session.visible_areas()
    return {
        "loading": session.geodata.loading,
        "areas": areas_payload(areas),
        "blockCount": sum(len(a.blocks) for a in areas),
    }


@app.post("/session/areas/{area_id}/zoom")
async def zoom_to_area(area_id: str):
    try:
        move = get_session().zoom_to_area(area_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=f"Unknown area {area_id}") from e
    return _camera_response(move)


@app.get("/session/state")
def selection_state():
    return _selection_response()


@app.post("/session/select/station/{station_id}")
def select_station(station_id: str):
    try:
        get_session().select_station(station_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=f"Unknown station {station_id}") from e
    return _selection_response()


@app.post("/session/select/cruise/{cruise_id}")
async def select_cruise(cruise_id: str):
    try:
        await get_session().select_cruise(cruise_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=f"Unknown cruise {cruise_id}") from e
    return _selection_response()


@app.post("/session/select/block/{block_id}")
async def select_block(block_id: str):
    await get_session().select_block(block_id)
    return _selection_response()


@app.post("/session/select/summary")
async def view_contractor_summary():
    await get_session().view_contractor_summary()
    return _selection_response()


@app.post("/session/close")
def close_panel():
    get_session().selection.close_panel()
    return _selection_response()


@app.post("/session/close-all")
def close_all():
    get_session().selection.close_all()
    return _selection_response()


@app.post("/session/hover")
def hover_station(body: ApiHover):
    session = get_session()
    station = session.data.station(body.stationId) if body.stationId is not None else None
    session.selection.hover_station(station, body.show and station is not None)
    return _selection_response()


@app.post("/session/summary-panel")
def toggle_summary_panel(body: ApiSummaryPanel):
    get_session().selection.toggle_summary_panel(body.show)
    return _selection_response()


@app.post("/session/toast/dismiss")
def dismiss_toast():
    get_session().selection.dismiss_toast()
    return _selection_response()


@app.get("/session/camera")
def drain_camera():
    engine = get_session().engine
    drain = getattr(engine, "drain", None)
    if drain is None:
        return []
    return [{"seq": seq, **cmd.as_dict()} for seq, cmd in drain()]


@app.post("/session/camera/{seq}/complete")
def complete_camera(seq: int):
    engine = get_session().engine
    complete = getattr(engine, "complete", None)
    if complete is None or not complete(seq):
        raise HTTPException(status_code=404, detail=f"No pending camera command {seq}")
    return {"seq": seq, "completed": True}


@app.get("/session/summary")
def map_summary():
    return get_session().map_summary().as_dict()


@app.get("/export/geojson")
def export_geojson():
    session = get_session()
    return {
        "filename": export_filename("map-areas", "geojson"),
        "data": session.areas_geojson(),
    }


@app.post("/export/csv")
def export_csv(body: ApiCsvExport):
    return {
        "filename": export_filename(body.prefix, "csv"),
        "data": rows_to_csv(body.rows),
    }
