from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal


StyleCategory = Literal["protected_area", "buffer_zone", "default"]


@dataclass(frozen=True)
class Feature:
    """
    One boundary record from a GeoJSON FeatureCollection.

    `geometry` is kept as the raw GeoJSON geometry mapping; shapely is only used
    where we need bounds or label positions.
    """

    id: str
    geometry: dict[str, Any]
    props: dict[str, Any]

    def to_geojson(self) -> dict[str, Any]:
        return {
            "type": "Feature",
            "id": self.id,
            "geometry": self.geometry,
            "properties": dict(self.props),
        }


@dataclass(frozen=True)
class RenderedLayer:
    """
    A loaded layer ready to be attached to the map.

    Identity matters: the map surface tracks attached layers by `key`, and the
    registry hands out the same instance for the whole session.
    """

    key: str
    title: str
    category: StyleCategory
    features: list[Feature]
    # Path style (weight/color/fillOpacity), fixed per category.
    style: dict[str, Any] = field(default_factory=dict)
    # feature id -> popup HTML (protected areas only).
    popups: dict[str, str] = field(default_factory=dict)

    def get(self, feature_id: str) -> Feature | None:
        fid = (feature_id or "").strip()
        for f in self.features:
            if f.id == fid:
                return f
        return None
