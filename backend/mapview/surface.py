from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Protocol

from geo.aoi import BBox
from render.view import fit_view_to_bbox


class MapLayer(Protocol):
    key: str


MapOp = Literal["add", "remove", "fit"]


class MapSurface(Protocol):
    """
    The only map capabilities the viewer logic relies on.
    """

    def add_layer(self, layer: MapLayer) -> None: ...

    def remove_layer(self, layer: MapLayer) -> None: ...

    def has_layer(self, layer: MapLayer) -> bool: ...

    def fit_bounds(self, bounds: BBox, *, padding: int = 0) -> None: ...


@dataclass(frozen=True)
class Basemap:
    id: str
    title: str
    url: str
    max_zoom: int
    attribution: str = ""


class InMemoryMap(MapSurface):
    """
    Server-side map state: attached layers (in attach order), view and basemap.

    Layers are tracked by `key`; `has_layer` is identity-based so a stale
    object with a reused key is not mistaken for the attached one.
    """

    def __init__(
        self,
        *,
        center: dict[str, float],
        zoom: float,
        basemaps: list[Basemap],
        basemap_id: str,
        viewport: dict[str, int] | None = None,
    ):
        if not basemaps:
            raise ValueError("At least one basemap is required")
        self.center = dict(center)
        self.zoom = float(zoom)
        self.viewport = viewport
        self.basemaps = {b.id: b for b in basemaps}
        self.basemap_id = basemap_id if basemap_id in self.basemaps else basemaps[0].id
        self._layers: dict[str, Any] = {}
        self.ops: list[tuple[MapOp, str]] = []

    @property
    def basemap(self) -> Basemap:
        return self.basemaps[self.basemap_id]

    def set_basemap(self, basemap_id: str) -> Basemap:
        if basemap_id not in self.basemaps:
            raise KeyError(basemap_id)
        self.basemap_id = basemap_id
        self.zoom = min(self.zoom, float(self.basemap.max_zoom))
        return self.basemap

    def add_layer(self, layer: MapLayer) -> None:
        if self._layers.get(layer.key) is layer:
            return
        self._layers[layer.key] = layer
        self.ops.append(("add", layer.key))

    def remove_layer(self, layer: MapLayer) -> None:
        if self._layers.get(layer.key) is not layer:
            return
        del self._layers[layer.key]
        self.ops.append(("remove", layer.key))

    def has_layer(self, layer: MapLayer) -> bool:
        return self._layers.get(layer.key) is layer

    def layers(self) -> list[Any]:
        return list(self._layers.values())

    def fit_bounds(self, bounds: BBox, *, padding: int = 0) -> None:
        self.center, self.zoom = fit_view_to_bbox(
            bounds,
            viewport=self.viewport,
            padding_px=padding,
            max_zoom=self.basemap.max_zoom,
        )
        self.ops.append(("fit", ""))
