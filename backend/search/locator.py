from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Final

from layers.registry import LayerRegistry
from layers.types import Feature, RenderedLayer
from search.normalize import normalize

logger = logging.getLogger(__name__)


class _NotFound:
    """Search outcome when no district matches. Falsy; not an error."""

    _instance: "_NotFound | None" = None

    def __new__(cls) -> "_NotFound":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_FOUND"


NOT_FOUND: Final = _NotFound()


@dataclass(frozen=True)
class SearchCriteria:
    district: str
    region: str | None = None
    province: str | None = None


@dataclass(frozen=True)
class SearchFields:
    district: str = "DISTRITO"
    region: tuple[str, ...] = ("NOMBDEP", "NOMDEP")
    province: tuple[str, ...] = ("PROVINCIA",)


def _first_present(props: dict[str, Any], keys: tuple[str, ...]) -> tuple[bool, Any]:
    for k in keys:
        if k in props:
            return True, props[k]
    return False, None


def _constraint_ok(props: dict[str, Any], keys: tuple[str, ...], wanted: str) -> bool:
    if not wanted:
        return True
    present, value = _first_present(props, keys)
    if not present:
        # Missing field never excludes a feature.
        return True
    return wanted in normalize(value)


def locate(
    criteria: SearchCriteria,
    districts: RenderedLayer,
    *,
    fields: SearchFields | None = None,
) -> Feature | _NotFound:
    """
    First district (in file order) whose name contains the search text.

    Matching is substring-based on normalized text, so "lima" matches
    "San Juan de Lima"; with several candidates the earliest feature wins.
    Region/province filters apply only to features that carry those keys.
    """
    fs = fields or SearchFields()
    dist_txt = normalize(criteria.district)
    reg_txt = normalize(criteria.region)
    prov_txt = normalize(criteria.province)
    if not dist_txt:
        return NOT_FOUND

    for f in districts.features:
        props = f.props or {}
        d = normalize(props.get(fs.district))
        if not d or dist_txt not in d:
            continue
        if not _constraint_ok(props, fs.region, reg_txt):
            continue
        if not _constraint_ok(props, fs.province, prov_txt):
            continue
        return f
    return NOT_FOUND


async def locate_district(
    registry: LayerRegistry,
    criteria: SearchCriteria,
    *,
    layer_key: str = "distritos",
    fields: SearchFields | None = None,
) -> Feature | _NotFound:
    districts = await registry.load(layer_key)
    found = locate(criteria, districts, fields=fields)
    logger.info(
        "district search %r (region=%r, province=%r): %s",
        criteria.district,
        criteria.region,
        criteria.province,
        found.id if isinstance(found, Feature) else "not found",
    )
    return found
