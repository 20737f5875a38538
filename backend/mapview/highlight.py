from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from geo.aoi import BBox
from geo.ops import features_bounds, label_point
from layers.types import Feature
from mapview.surface import MapSurface

HIGHLIGHT_KEY = "highlight"
HIGHLIGHT_STYLE: dict[str, Any] = {"weight": 4, "color": "#ff6b00", "fillOpacity": 0.08}
LABEL_CLASS = "admin-label"


@dataclass(frozen=True)
class HighlightOverlay:
    """
    Emphasised copy of one feature plus a permanent centred label.
    """

    feature: Feature
    label: str
    label_at: tuple[float, float] | None
    bounds: BBox | None
    key: str = HIGHLIGHT_KEY
    style: dict[str, Any] = field(default_factory=lambda: dict(HIGHLIGHT_STYLE))
    label_class: str = LABEL_CLASS


class HighlightManager:
    """
    Owns the single highlight slot on a map. Replacing tears the old overlay
    down first, so at most one is ever attached.
    """

    def __init__(
        self,
        surface: MapSurface,
        *,
        label_field: str = "DISTRITO",
        label_fallback: str = "Distrito",
    ):
        self._surface = surface
        self._label_field = label_field
        self._label_fallback = label_fallback
        self.current: HighlightOverlay | None = None

    def set_highlight(self, feature: Feature) -> BBox | None:
        # Build first: a geometry shapely rejects leaves the current overlay in place.
        name = (feature.props or {}).get(self._label_field)
        overlay = HighlightOverlay(
            feature=feature,
            label=self._label_fallback if name is None else str(name),
            label_at=label_point(feature),
            bounds=features_bounds([feature]),
        )
        self.clear()
        self._surface.add_layer(overlay)
        self.current = overlay
        return overlay.bounds

    def clear(self) -> None:
        if self.current is None:
            return
        if self._surface.has_layer(self.current):
            self._surface.remove_layer(self.current)
        self.current = None
