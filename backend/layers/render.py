from __future__ import annotations

from html import escape
from typing import Any

from layers.types import Feature, RenderedLayer, StyleCategory

# Fixed per category; not configurable per session.
CATEGORY_STYLES: dict[str, dict[str, Any]] = {
    "protected_area": {"weight": 2, "color": "#1f2937", "fillOpacity": 0.06},
    "buffer_zone": {"weight": 2, "color": "#7c2d12", "fillOpacity": 0.03},
    "default": {"weight": 1.5, "color": "#334155", "fillOpacity": 0.03},
}


def render_layer(
    key: str,
    features: list[Feature],
    *,
    category: StyleCategory = "default",
    title: str | None = None,
) -> RenderedLayer:
    style = dict(CATEGORY_STYLES.get(category) or CATEGORY_STYLES["default"])
    popups: dict[str, str] = {}
    if category == "protected_area":
        popups = {f.id: protected_area_popup(f.props) for f in features}
    return RenderedLayer(
        key=key,
        title=title or key,
        category=category,
        features=list(features),
        style=style,
        popups=popups,
    )


def protected_area_popup(props: dict[str, Any] | None) -> str:
    p = props or {}
    name = _text(p.get("anp_nomb"), "ANP")
    code = _text(p.get("anp_codi"), "-")
    cat = _text(p.get("anp_cate"), "-")
    return (
        '<div style="font-size:13px">'
        f'<div style="font-weight:900;margin-bottom:6px">{name}</div>'
        f"<div><b>Código:</b> {code}</div>"
        f"<div><b>Categoría:</b> {cat}</div>"
        "</div>"
    )


def _text(value: Any, fallback: str) -> str:
    if value is None:
        return escape(fallback)
    return escape(str(value))
