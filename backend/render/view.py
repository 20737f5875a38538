from __future__ import annotations

import math

from geo.aoi import BBox

DEFAULT_VIEWPORT = {"width": 900, "height": 600}

_MAX_MERCATOR_LAT = 85.05112878


def fit_view_to_bbox(
    bbox: BBox,
    *,
    viewport: dict[str, int] | None = None,
    padding_px: int = 0,
    max_zoom: float | None = None,
) -> tuple[dict[str, float], float]:
    b = bbox.normalized()
    center = b.center()

    width = int((viewport or {}).get("width") or DEFAULT_VIEWPORT["width"])
    height = int((viewport or {}).get("height") or DEFAULT_VIEWPORT["height"])
    # Padding applies on both sides; keep at least a sliver of usable viewport.
    width = max(32, width - 2 * int(padding_px))
    height = max(32, height - 2 * int(padding_px))

    zoom = bbox_to_zoom(
        b.min_lon, b.min_lat, b.max_lon, b.max_lat, width=width, height=height
    )
    if max_zoom is not None:
        zoom = min(zoom, float(max_zoom))
    return center, max(0.0, zoom)


def bbox_to_zoom(
    min_lon: float,
    min_lat: float,
    max_lon: float,
    max_lat: float,
    *,
    width: int,
    height: int,
) -> float:
    # WebMercator bbox -> zoom heuristic.
    def lat_to_rad(lat: float) -> float:
        lat = max(-_MAX_MERCATOR_LAT, min(_MAX_MERCATOR_LAT, lat))
        s = math.sin(lat * math.pi / 180.0)
        return math.log((1 + s) / (1 - s)) / 2.0

    lat_rad_min = lat_to_rad(min_lat)
    lat_rad_max = lat_to_rad(max_lat)
    lon_delta = max_lon - min_lon
    lat_delta = (lat_rad_max - lat_rad_min) * 180.0 / math.pi

    # avoid division by zero
    lon_delta = max(lon_delta, 1e-6)
    lat_delta = max(lat_delta, 1e-6)

    # 256px tiles
    zoom_x = math.log2((width * 360.0) / (256.0 * lon_delta))
    zoom_y = math.log2((height * 170.0) / (256.0 * lat_delta))
    return float(min(zoom_x, zoom_y))
