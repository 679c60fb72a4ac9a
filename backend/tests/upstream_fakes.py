from __future__ import annotations

import json
from typing import Any

import httpx

from upstream.client import UpstreamClient

BASE_URL = "http://upstream.test/api"


def square(lon: float, lat: float, size: float = 1.0) -> dict[str, Any]:
    return {
        "type": "Polygon",
        "coordinates": [
            [
                [lon, lat],
                [lon + size, lat],
                [lon + size, lat + size],
                [lon, lat + size],
                [lon, lat],
            ]
        ],
    }


def block(block_id: int, lon: float, lat: float, status: str = "active") -> dict[str, Any]:
    return {
        "blockId": block_id,
        "blockName": f"Block {block_id}",
        "status": status,
        "geoJson": square(lon, lat, 0.5),
        "areaSizeKm2": 100.0,
    }


def area(
    area_id: int,
    lon: float,
    lat: float,
    blocks: list[dict[str, Any]] | None = None,
    *,
    geo_as_string: bool = False,
) -> dict[str, Any]:
    geom: Any = square(lon, lat, 2.0)
    if geo_as_string:
        geom = json.dumps(geom)
    return {
        "areaId": area_id,
        "areaName": f"Area {area_id}",
        "geoJson": geom,
        "totalAreaSizeKm2": 1000.0,
        "blocks": blocks or [],
    }


Route = Any  # JSON body, an int status, or a callable(request) -> httpx.Response


class FakeUpstream:
    """
    Path-suffix routed `httpx.MockTransport` that records every request path.
    """

    def __init__(self, routes: dict[str, Route] | None = None):
        self.routes: dict[str, Route] = dict(routes or {})
        self.calls: list[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append(path)
        for suffix, route in self.routes.items():
            if path.endswith(suffix):
                if callable(route):
                    return route(request)
                if isinstance(route, int):
                    return httpx.Response(route, text="upstream error")
                return httpx.Response(200, json=route)
        return httpx.Response(404, text="not found")

    def client(self) -> UpstreamClient:
        return UpstreamClient(BASE_URL, timeout=2.0, transport=httpx.MockTransport(self.handler))

    def count(self, suffix: str) -> int:
        return sum(1 for p in self.calls if p.endswith(suffix))


def raise_connect_error(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


def map_data_payload() -> dict[str, Any]:
    return {
        "contractors": [
            {
                "contractorId": 1,
                "contractorName": "Ocean Minerals",
                "contractType": "PMN",
                "sponsoringState": "Belgium",
                "contractualYear": 2013,
            },
            {
                "contractorId": 2,
                "contractorName": "Deep Sea Resources",
                "contractType": "PMS",
                "sponsoringState": "China",
                "contractualYear": 2011,
            },
        ],
        "cruises": [
            {
                "cruiseId": 10,
                "cruiseName": "CC-2021",
                "contractorId": 1,
                "stations": [
                    {"stationId": 100, "latitude": 10.0, "longitude": -130.0},
                    {"stationId": 101, "latitude": 10.01, "longitude": -130.01},
                    {"stationId": 102, "latitude": 12.0, "longitude": -125.0},
                ],
            },
            {
                "cruiseId": 20,
                "cruiseName": "IO-2019",
                "contractorId": 2,
                "stations": [
                    {"stationId": 200, "latitude": -30.0, "longitude": 60.0},
                ],
            },
        ],
    }
