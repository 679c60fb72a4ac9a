from __future__ import annotations

import csv
import io
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Sequence

from shapely.geometry import mapping

from layers.types import AreaLayer


def export_filename(prefix: str, ext: str, *, now: datetime | None = None) -> str:
    ts = (now or datetime.now(timezone.utc)).isoformat().replace(":", "-").replace(".", "-")
    return f"{prefix}-{ts}.{ext}"


def areas_feature_collection(areas: Iterable[AreaLayer]) -> dict[str, Any]:
    """
    Rendered area and block layers as a GeoJSON FeatureCollection.
    """
    features: list[dict[str, Any]] = []
    for a in areas:
        features.append(
            {
                "type": "Feature",
                "geometry": mapping(a.geometry),
                "properties": {
                    "layer": "area",
                    "contractorId": a.contractor_id,
                    "areaId": a.area_id,
                    "areaName": a.area_name,
                    "totalAreaSizeKm2": a.total_area_size_km2,
                },
            }
        )
        for b in a.blocks:
            features.append(
                {
                    "type": "Feature",
                    "geometry": mapping(b.geometry),
                    "properties": {
                        "layer": "block",
                        "contractorId": a.contractor_id,
                        "areaId": a.area_id,
                        "blockId": b.block_id,
                        "blockName": b.block_name,
                        "status": b.status.value,
                        "color": b.status.color,
                        "areaSizeKm2": b.area_size_km2,
                    },
                }
            )
    return {"type": "FeatureCollection", "features": features}


def rows_to_csv(rows: Sequence[Mapping[str, Any]]) -> str:
    """
    Serialize rows to CSV; the header is the first row's keys.

    Strings are quoted (embedded quotes doubled); numbers are written bare.
    """
    if not rows:
        return ""
    header = list(rows[0].keys())
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    writer.writerow(header)
    for row in rows:
        writer.writerow([_csv_value(row.get(k)) for k in header])
    return buf.getvalue().rstrip("\n")


def _csv_value(v: Any) -> Any:
    if v is None or isinstance(v, (bool, int, float)):
        return v
    return str(v)
