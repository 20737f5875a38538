from __future__ import annotations

import logging
from typing import Iterable, Literal, Mapping

from layers.registry import LayerRegistry
from mapview.surface import MapSurface

logger = logging.getLogger(__name__)

SyncOp = tuple[Literal["add", "remove"], str]


def _iter_toggles(toggles: Mapping[str, bool] | Iterable[tuple[str, bool]]):
    if isinstance(toggles, Mapping):
        return list(toggles.items())
    return list(toggles)


async def sync_layers(
    registry: LayerRegistry,
    surface: MapSurface,
    toggles: Mapping[str, bool] | Iterable[tuple[str, bool]],
) -> list[SyncOp]:
    """
    Make the attached optional layers match the toggle state.

    Every toggled key is loaded (checked or not), then attached or detached as
    needed. Returns the operations performed; an unchanged toggle state yields
    an empty list.
    """
    ops: list[SyncOp] = []
    for key, checked in _iter_toggles(toggles):
        layer = await registry.load(key)
        present = surface.has_layer(layer)
        if checked and not present:
            surface.add_layer(layer)
            ops.append(("add", key))
        elif not checked and present:
            surface.remove_layer(layer)
            ops.append(("remove", key))
    if ops:
        logger.info("layer sync: %s", ", ".join(f"{op} {key}" for op, key in ops))
    return ops
