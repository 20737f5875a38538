from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Literal, Union

import requests

from layers.errors import LoadError, RegistryError
from layers.loaders import parse_feature_collection
from layers.render import render_layer
from layers.types import RenderedLayer, StyleCategory

logger = logging.getLogger(__name__)

HTTP_TIMEOUT_S = 30.0

LoadStatus = Literal["not_loaded", "loading", "loaded"]


@dataclass(frozen=True)
class LayerSource:
    key: str
    source: str
    title: str = ""
    category: StyleCategory = "default"


@dataclass(frozen=True)
class NotLoaded:
    pass


@dataclass(frozen=True)
class Loading:
    task: asyncio.Task


@dataclass(frozen=True)
class Loaded:
    layer: RenderedLayer


SlotState = Union[NotLoaded, Loading, Loaded]


@dataclass
class LayerEntry:
    source: LayerSource
    state: SlotState = field(default_factory=NotLoaded)

    @property
    def status(self) -> LoadStatus:
        if isinstance(self.state, Loaded):
            return "loaded"
        if isinstance(self.state, Loading):
            return "loading"
        return "not_loaded"


def is_url(source: str) -> bool:
    return (source or "").lower().startswith(("http://", "https://"))


def fetch_source(source: str, *, base_dir: Path, timeout_s: float = HTTP_TIMEOUT_S) -> bytes:
    """
    Blocking fetch of a layer source; run it off the event loop.
    """
    if is_url(source):
        try:
            resp = requests.get(source, timeout=timeout_s)
        except requests.RequestException as e:
            raise LoadError(source, f"{type(e).__name__}: {e}") from e
        if not resp.ok:
            raise LoadError(source, f"HTTP {resp.status_code}")
        return resp.content

    path = base_dir / (source or "").lstrip("/")
    try:
        return path.read_bytes()
    except OSError as e:
        raise LoadError(source, e.strerror or type(e).__name__) from e


class LayerRegistry:
    """
    Lazy, at-most-once layer cache keyed by layer key.

    A slot goes NotLoaded -> Loading(task) -> Loaded(layer). The first caller
    claims the slot before its first await, so overlapping callers share one
    fetch. A failed load puts the slot back to NotLoaded; a loaded slot is never
    refreshed.
    """

    def __init__(
        self,
        sources: Iterable[LayerSource],
        *,
        base_dir: Path,
        fetch: Callable[[str], bytes] | None = None,
    ):
        self._entries: dict[str, LayerEntry] = {}
        for src in sources:
            if src.key in self._entries:
                raise ValueError(f"Duplicate layer key: {src.key}")
            self._entries[src.key] = LayerEntry(source=src)
        self._base_dir = base_dir
        self._fetch = fetch or (lambda s: fetch_source(s, base_dir=self._base_dir))

    def keys(self) -> list[str]:
        return list(self._entries.keys())

    def entry(self, key: str) -> LayerEntry:
        entry = self._entries.get((key or "").strip())
        if entry is None:
            raise RegistryError(key)
        return entry

    def status(self) -> dict[str, LoadStatus]:
        return {k: e.status for k, e in self._entries.items()}

    def is_loaded(self, key: str) -> bool:
        return isinstance(self.entry(key).state, Loaded)

    def get_loaded(self, key: str) -> RenderedLayer | None:
        state = self.entry(key).state
        return state.layer if isinstance(state, Loaded) else None

    async def load(self, key: str) -> RenderedLayer:
        entry = self.entry(key)
        state = entry.state
        if isinstance(state, Loaded):
            return state.layer
        if isinstance(state, Loading):
            return await state.task

        # Claim the slot before suspending.
        task = asyncio.ensure_future(self._load_entry(entry))
        entry.state = Loading(task)
        return await task

    async def _load_entry(self, entry: LayerEntry) -> RenderedLayer:
        src = entry.source
        logger.info("loading layer %s from %s", src.key, src.source)
        try:
            raw = await asyncio.to_thread(self._fetch, src.source)
            features = parse_feature_collection(raw, source=src.source)
            layer = render_layer(
                src.key, features, category=src.category, title=src.title or src.key
            )
            entry.state = Loaded(layer)
        except LoadError as e:
            logger.warning("layer %s failed to load: %s", src.key, e.reason)
            raise
        finally:
            if not isinstance(entry.state, Loaded):
                entry.state = NotLoaded()
        logger.info("layer %s loaded (%d features)", src.key, len(layer.features))
        return layer
