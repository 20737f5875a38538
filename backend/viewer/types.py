from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator

from layers.types import StyleCategory
from mapview.highlight import HIGHLIGHT_KEY


class ViewerCenter(BaseModel):
    lat: float
    lon: float


class ViewerDefaultView(BaseModel):
    center: ViewerCenter
    zoom: float = Field(ge=0.0, le=24.0)


class BasemapConfig(BaseModel):
    id: str
    title: str
    url: str
    maxZoom: int = Field(default=18, ge=1, le=24)
    attribution: str = ""


class LayerConfig(BaseModel):
    """
    One boundary layer.

    `source` is either an http(s) URL or a repo-relative path to a GeoJSON
    FeatureCollection.
    """

    key: str
    title: str
    source: str
    style: StyleCategory = "default"


class SearchConfig(BaseModel):
    layerKey: str = "distritos"
    districtField: str = "DISTRITO"
    # First key present in a feature wins; absent keys never exclude a feature.
    regionFields: list[str] = Field(default_factory=lambda: ["NOMBDEP", "NOMDEP"])
    provinceFields: list[str] = Field(default_factory=lambda: ["PROVINCIA"])
    labelFallback: str = "Distrito"


class AutocompleteList(BaseModel):
    id: Literal["regions", "provinces", "districts"]
    layerKey: str
    field: str


class ViewerConfig(BaseModel):
    id: str
    title: str
    defaultView: ViewerDefaultView
    basemaps: list[BasemapConfig]
    defaultBasemap: str
    # Base directory for relative layer sources; absolute, or repo-relative.
    dataRoot: str = ""
    layers: list[LayerConfig]
    search: SearchConfig = Field(default_factory=SearchConfig)
    autocomplete: list[AutocompleteList] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_references(self) -> "ViewerConfig":
        keys = [layer.key for layer in self.layers]
        if len(set(keys)) != len(keys):
            raise ValueError(f"Duplicate layer keys: {keys}")
        if HIGHLIGHT_KEY in keys:
            raise ValueError(f"Layer key '{HIGHLIGHT_KEY}' is reserved for the search highlight")
        known = set(keys)
        if self.search.layerKey not in known:
            raise ValueError(f"search.layerKey references unknown layer: {self.search.layerKey}")
        for item in self.autocomplete:
            if item.layerKey not in known:
                raise ValueError(f"autocomplete '{item.id}' references unknown layer: {item.layerKey}")
        if self.defaultBasemap not in {b.id for b in self.basemaps}:
            raise ValueError(f"Unknown defaultBasemap: {self.defaultBasemap}")
        return self

    def layer(self, key: str) -> LayerConfig | None:
        for layer in self.layers:
            if layer.key == key:
                return layer
        return None
