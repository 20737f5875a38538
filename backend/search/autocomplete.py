from __future__ import annotations

from layers.types import RenderedLayer


def suggestions(layer: RenderedLayer, field: str) -> list[str]:
    """
    Distinct non-empty values of `field`, plain lexicographic order.
    """
    seen: set[str] = set()
    for f in layer.features:
        v = (f.props or {}).get(field)
        if v is None:
            continue
        s = str(v)
        if s:
            seen.add(s)
    return sorted(seen)
