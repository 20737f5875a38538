from __future__ import annotations

from typing import Any

from geo.ops import outer_rings
from layers.types import Feature, RenderedLayer
from mapview.highlight import HighlightOverlay


def _rgba(hex_color: str, alpha: float) -> str:
    h = (hex_color or "").lstrip("#")
    if len(h) != 6:
        return f"rgba(51, 65, 85, {alpha})"
    r, g, b = int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16)
    return f"rgba({r}, {g}, {b}, {alpha})"


def _polygon_coords(
    features: list[Feature], popups: dict[str, str] | None = None
) -> tuple[list[float | None], list[float | None], list[str | None]]:
    lons: list[float | None] = []
    lats: list[float | None] = []
    text: list[str | None] = []
    for f in features:
        popup = (popups or {}).get(f.id)
        for ring in outer_rings(f):
            for lon, lat in ring:
                lons.append(lon)
                lats.append(lat)
                text.append(popup)
            lons.append(None)
            lats.append(None)
            text.append(None)
    return lons, lats, text


def trace_layer(layer: RenderedLayer) -> dict[str, Any]:
    style = layer.style or {}
    color = str(style.get("color") or "#334155")
    lons, lats, text = _polygon_coords(layer.features, layer.popups)
    trace: dict[str, Any] = {
        "type": "scattermapbox",
        "name": layer.title,
        "meta": {"layerKey": layer.key, "category": layer.category},
        "lon": lons,
        "lat": lats,
        "mode": "lines",
        "fill": "toself",
        "fillcolor": _rgba(color, float(style.get("fillOpacity") or 0.0)),
        "line": {"color": color, "width": float(style.get("weight") or 1)},
        "hoverinfo": "skip",
    }
    if layer.popups:
        trace["text"] = text
        trace["hoverinfo"] = "text"
        trace["hovertemplate"] = "%{text}<extra></extra>"
    return trace


def trace_highlight(overlay: HighlightOverlay) -> dict[str, Any]:
    style = overlay.style
    color = str(style.get("color") or "#ff6b00")
    lons, lats, _ = _polygon_coords([overlay.feature])
    return {
        "type": "scattermapbox",
        "name": overlay.label,
        "meta": {"layerKey": overlay.key, "featureId": overlay.feature.id},
        "lon": lons,
        "lat": lats,
        "mode": "lines",
        "fill": "toself",
        "fillcolor": _rgba(color, float(style.get("fillOpacity") or 0.0)),
        "line": {"color": color, "width": float(style.get("weight") or 4)},
        "hoverinfo": "skip",
        "showlegend": False,
    }


def trace_highlight_label(overlay: HighlightOverlay) -> dict[str, Any] | None:
    if overlay.label_at is None:
        return None
    lon, lat = overlay.label_at
    return {
        "type": "scattermapbox",
        "name": f"{overlay.label} (label)",
        "meta": {"layerKey": overlay.key, "className": overlay.label_class},
        "lon": [lon],
        "lat": [lat],
        "mode": "text",
        "text": [overlay.label],
        "textposition": "middle center",
        "textfont": {"size": 13, "color": "#111827"},
        "hoverinfo": "skip",
        "showlegend": False,
    }
