from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Mapping

from geo.aoi import BBox
from layers.errors import ViewerError
from layers.registry import LayerRegistry, LayerSource
from layers.types import Feature
from mapview.highlight import HighlightManager
from mapview.surface import Basemap, InMemoryMap
from mapview.sync import SyncOp, sync_layers
from search.autocomplete import suggestions
from search.locator import SearchCriteria, SearchFields, locate_district
from search.normalize import normalize
from viewer.config import resolve_data_root
from viewer.status import StatusReporter
from viewer.types import ViewerConfig

logger = logging.getLogger(__name__)

MSG_SEARCHING = "Buscando distrito y cargando capas..."
MSG_DISTRICT_REQUIRED = "Escribe al menos el Distrito."
MSG_NOT_FOUND = "No encontré el distrito con esos filtros."
MSG_FOUND = "✅ Distrito resaltado: {name}"
MSG_AUTOCOMPLETE_LOADING = "Cargando autocompletar..."
MSG_AUTOCOMPLETE_READY = "✅ Autocomplete listo. Escribe y elige de la lista."
MSG_AUTOCOMPLETE_ERROR = "❌ Autocomplete error: {error}"
MSG_ERROR = "Error: {error}"

FIT_PADDING_PX = 30

Toggles = Mapping[str, bool] | Iterable[tuple[str, bool]]


@dataclass(frozen=True)
class SearchOutcome:
    status: str
    feature: Feature | None = None
    bounds: BBox | None = None
    operations: list[SyncOp] = field(default_factory=list)
    error: bool = False


@dataclass(frozen=True)
class SyncOutcome:
    status: str
    operations: list[SyncOp] = field(default_factory=list)
    error: bool = False


def build_registry(
    config: ViewerConfig,
    *,
    base_dir: Path | None = None,
    fetch: Callable[[str], bytes] | None = None,
) -> LayerRegistry:
    return LayerRegistry(
        [
            LayerSource(
                key=layer.key,
                source=layer.source,
                title=layer.title,
                category=layer.style,
            )
            for layer in config.layers
        ],
        base_dir=base_dir or resolve_data_root(config.dataRoot),
        fetch=fetch,
    )


class ViewerController:
    """
    Application state for one viewer session and the handlers that mutate it.

    Handlers never raise: failures end up as the status message and the
    session stays usable. Pass `registry` to share loaded layers between
    sessions.
    """

    def __init__(
        self,
        config: ViewerConfig,
        *,
        base_dir: Path | None = None,
        fetch: Callable[[str], bytes] | None = None,
        viewport: dict[str, int] | None = None,
        registry: LayerRegistry | None = None,
    ):
        self.config = config
        if registry is None:
            registry = build_registry(config, base_dir=base_dir, fetch=fetch)
        self.registry = registry
        view = config.defaultView
        self.surface = InMemoryMap(
            center={"lat": view.center.lat, "lon": view.center.lon},
            zoom=view.zoom,
            basemaps=[
                Basemap(
                    id=b.id,
                    title=b.title,
                    url=b.url,
                    max_zoom=b.maxZoom,
                    attribution=b.attribution,
                )
                for b in config.basemaps
            ],
            basemap_id=config.defaultBasemap,
            viewport=viewport,
        )
        search = config.search
        self.fields = SearchFields(
            district=search.districtField,
            region=tuple(search.regionFields),
            province=tuple(search.provinceFields),
        )
        self.highlight = HighlightManager(
            self.surface,
            label_field=search.districtField,
            label_fallback=search.labelFallback,
        )
        self.status = StatusReporter()
        self.suggestions: dict[str, list[str]] | None = None

    async def on_ready(self) -> dict[str, list[str]]:
        """
        Build the autocomplete lists once per session.
        """
        if self.suggestions is not None:
            return self.suggestions

        self.status.set(MSG_AUTOCOMPLETE_LOADING)
        lists: dict[str, list[str]] = {}
        try:
            for item in self.config.autocomplete:
                layer = await self.registry.load(item.layerKey)
                lists[item.id] = suggestions(layer, item.field)
        except ViewerError as e:
            logger.warning("autocomplete failed: %s", e)
            self.status.set(MSG_AUTOCOMPLETE_ERROR.format(error=e))
            return {}
        except Exception as e:
            logger.exception("autocomplete failed")
            self.status.set(MSG_AUTOCOMPLETE_ERROR.format(error=e))
            return {}

        self.suggestions = lists
        self.status.set(MSG_AUTOCOMPLETE_READY)
        return lists

    async def on_search(self, criteria: SearchCriteria, toggles: Toggles) -> SearchOutcome:
        """
        Search and highlight a district, then sync the toggled layers.

        The search (including its layer load) completes before the sync starts.
        """
        self.status.set(MSG_SEARCHING)
        try:
            feature, bounds = await self._search_and_highlight(criteria)
            ops = await sync_layers(self.registry, self.surface, toggles)
        except ViewerError as e:
            logger.warning("search failed: %s", e)
            self.status.set(MSG_ERROR.format(error=e))
            return SearchOutcome(status=self.status.message, error=True)
        except Exception as e:
            logger.exception("search failed")
            self.status.set(MSG_ERROR.format(error=e))
            return SearchOutcome(status=self.status.message, error=True)

        return SearchOutcome(
            status=self.status.message, feature=feature, bounds=bounds, operations=ops
        )

    async def on_toggle(self, toggles: Toggles) -> SyncOutcome:
        try:
            ops = await sync_layers(self.registry, self.surface, toggles)
        except ViewerError as e:
            logger.warning("layer sync failed: %s", e)
            self.status.set(MSG_ERROR.format(error=e))
            return SyncOutcome(status=self.status.message, error=True)
        except Exception as e:
            logger.exception("layer sync failed")
            self.status.set(MSG_ERROR.format(error=e))
            return SyncOutcome(status=self.status.message, error=True)
        return SyncOutcome(status=self.status.message, operations=ops)

    def set_basemap(self, basemap_id: str) -> Basemap | None:
        try:
            return self.surface.set_basemap(basemap_id)
        except KeyError:
            self.status.set(MSG_ERROR.format(error=f"Basemap desconocido: {basemap_id}"))
            return None

    async def _search_and_highlight(
        self, criteria: SearchCriteria
    ) -> tuple[Feature | None, BBox | None]:
        if not normalize(criteria.district):
            self.status.set(MSG_DISTRICT_REQUIRED)
            return None, None

        found = await locate_district(
            self.registry,
            criteria,
            layer_key=self.config.search.layerKey,
            fields=self.fields,
        )
        if not isinstance(found, Feature):
            self.status.set(MSG_NOT_FOUND)
            return None, None

        bounds = self.highlight.set_highlight(found)
        if bounds is not None:
            self.surface.fit_bounds(bounds, padding=FIT_PADDING_PX)
        name = (found.props or {}).get(self.fields.district)
        self.status.set(MSG_FOUND.format(name="" if name is None else name))
        return found, bounds
