from __future__ import annotations

from typing import Iterable

from shapely.geometry import shape
from shapely.geometry.base import BaseGeometry

from geo.aoi import BBox
from layers.types import Feature


def feature_geometry(feature: Feature) -> BaseGeometry | None:
    if not feature.geometry:
        return None
    geom = shape(feature.geometry)
    if geom.is_empty:
        return None
    return geom


def features_bounds(features: Iterable[Feature]) -> BBox | None:
    """
    Union bbox of the given features (EPSG:4326), or None when nothing has geometry.
    """
    out: BBox | None = None
    for f in features:
        geom = feature_geometry(f)
        if geom is None:
            continue
        min_lon, min_lat, max_lon, max_lat = geom.bounds
        b = BBox(min_lon=min_lon, min_lat=min_lat, max_lon=max_lon, max_lat=max_lat)
        out = b if out is None else out.union(b)
    return out


def label_point(feature: Feature) -> tuple[float, float] | None:
    """
    (lon, lat) for a centred label; always inside the polygon.
    """
    geom = feature_geometry(feature)
    if geom is None:
        return None
    p = geom.representative_point()
    return float(p.x), float(p.y)


def outer_rings(feature: Feature) -> list[list[tuple[float, float]]]:
    """
    Outer rings of (Multi)Polygon geometries as closed [(lon, lat), ...] lists.
    """
    geom = feature.geometry or {}
    gtype = geom.get("type")
    coords = geom.get("coordinates") or []
    polys: list = []
    if gtype == "Polygon":
        polys = [coords]
    elif gtype == "MultiPolygon":
        polys = list(coords)
    elif gtype == "GeometryCollection":
        out: list[list[tuple[float, float]]] = []
        for g in geom.get("geometries") or []:
            out.extend(outer_rings(Feature(id=feature.id, geometry=g, props={})))
        return out

    rings: list[list[tuple[float, float]]] = []
    for poly in polys:
        if not poly:
            continue
        ring = _to_ring(poly[0])
        if len(ring) < 3:
            continue
        if ring[0] != ring[-1]:
            ring = [*ring, ring[0]]
        rings.append(ring)
    return rings


def _to_ring(ring) -> list[tuple[float, float]]:
    out: list[tuple[float, float]] = []
    for p in ring or []:
        if not p or len(p) < 2:
            continue
        lon, lat = float(p[0]), float(p[1])
        out.append((lon, lat))
    return out
