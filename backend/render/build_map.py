from __future__ import annotations

from typing import Any

from layers.types import RenderedLayer
from mapview.highlight import HighlightOverlay
from mapview.surface import InMemoryMap
from render.traces import trace_highlight, trace_highlight_label, trace_layer


def _tile_urls(url: str) -> list[str]:
    # Leaflet-style {s} subdomains are not understood by raster sources.
    if "{s}" not in url:
        return [url]
    return [url.replace("{s}", s) for s in ("a", "b", "c")]


def build_map_plot(surface: InMemoryMap) -> dict[str, Any]:
    """
    Plotly-structured payload for the current map state.

    Boundary layers come first in attach order; the highlight (outline, then
    label) is always drawn on top.
    """
    traces: list[dict[str, Any]] = []
    overlays: list[HighlightOverlay] = []
    attached: list[str] = []
    for layer in surface.layers():
        if isinstance(layer, HighlightOverlay):
            overlays.append(layer)
        elif isinstance(layer, RenderedLayer):
            attached.append(layer.key)
            traces.append(trace_layer(layer))

    for overlay in overlays:
        traces.append(trace_highlight(overlay))
        label = trace_highlight_label(overlay)
        if label is not None:
            traces.append(label)

    basemap = surface.basemap
    meta: dict[str, Any] = {
        "attachedLayers": attached,
        "basemap": basemap.id,
        "basemaps": [
            {"id": b.id, "title": b.title} for b in surface.basemaps.values()
        ],
    }
    if overlays:
        hl = overlays[-1]
        meta["highlight"] = {
            "featureId": hl.feature.id,
            "label": hl.label,
            "bounds": hl.bounds.as_dict() if hl.bounds is not None else None,
        }

    return {
        "data": traces,
        "layout": {
            "mapbox": {
                "center": surface.center,
                "zoom": surface.zoom,
                "style": "white-bg",
                "layers": [
                    {
                        "below": "traces",
                        "sourcetype": "raster",
                        "sourceattribution": basemap.attribution,
                        "source": _tile_urls(basemap.url),
                    }
                ],
            },
            "showlegend": True,
            "legend": {
                "x": 0.99,
                "y": 0.99,
                "xanchor": "right",
                "yanchor": "top",
                "bgcolor": "rgba(255, 255, 255, 0.75)",
                "bordercolor": "rgba(120, 120, 120, 0.35)",
                "borderwidth": 1,
                "font": {"size": 11},
            },
            "meta": meta,
        },
    }
