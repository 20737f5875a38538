from __future__ import annotations

import json
from typing import Any

from layers.errors import LoadError
from layers.types import Feature


def parse_feature_collection(raw: str | bytes, *, source: str) -> list[Feature]:
    """
    Parse a GeoJSON FeatureCollection into `Feature` records, keeping file order.

    Features without geometry are kept: they still carry searchable properties.
    Ids are unique within the collection; a repeated id gets its index appended.
    """
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise LoadError(source, f"invalid JSON: {e}") from e

    if not isinstance(data, dict) or data.get("type") != "FeatureCollection":
        raise LoadError(source, "not a GeoJSON FeatureCollection")

    features = data.get("features") or []
    out: list[Feature] = []
    seen: set[str] = set()
    for i, feature in enumerate(features):
        if not isinstance(feature, dict):
            continue
        geom = feature.get("geometry") or {}
        props = feature.get("properties") or {}
        fid = str(feature.get("id") or props.get("id") or f"f-{i}")
        base, n = fid, i
        while fid in seen:
            fid = f"{base}-{n}"
            n += 1
        seen.add(fid)
        out.append(Feature(id=fid, geometry=_clean_geometry(geom), props=dict(props)))
    return out


def _clean_geometry(geom: Any) -> dict[str, Any]:
    if not isinstance(geom, dict) or not geom.get("type"):
        return {}
    if geom.get("type") == "GeometryCollection":
        return {
            "type": "GeometryCollection",
            "geometries": [_clean_geometry(g) for g in geom.get("geometries") or []],
        }
    if not geom.get("coordinates"):
        return {}
    return {"type": geom["type"], "coordinates": geom["coordinates"]}
