from __future__ import annotations

import logging
import os
import threading
import uuid
from functools import lru_cache

from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from api.models import (
    ApiAutocompleteResponse,
    ApiBasemapRequest,
    ApiBounds,
    ApiLayerInfo,
    ApiSearchRequest,
    ApiSearchResponse,
    ApiSyncRequest,
    ApiSyncResponse,
)
from layers.registry import LayerRegistry
from render.build_map import build_map_plot
from search.locator import SearchCriteria
from viewer.config import clear_config_cache, get_config
from viewer.controller import ViewerController, build_registry

SESSION_COOKIE = "viewer_session"
SESSION_HEADER = "X-Viewer-Session"
MAX_SESSIONS = 256

logging.basicConfig(
    level=(os.getenv("PERU_VIEWER_LOG_LEVEL") or "INFO").strip().upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[SESSION_HEADER],
)

_sessions: dict[str, ViewerController] = {}
_sessions_lock = threading.Lock()


@lru_cache(maxsize=1)
def get_registry() -> LayerRegistry:
    return build_registry(get_config())


def _bounded_cache_put(cache: dict, key, value, *, max_items: int) -> None:
    cache[key] = value
    if len(cache) > max_items:
        oldest = next(iter(cache.keys()))
        if oldest != key:
            cache.pop(oldest, None)


def _new_session(session_id: str) -> ViewerController:
    ctl = ViewerController(get_config(), registry=get_registry())
    _bounded_cache_put(_sessions, session_id, ctl, max_items=MAX_SESSIONS)
    return ctl


def get_session_id(request: Request, response: Response) -> str:
    """
    Session id from the `X-Viewer-Session` header or the session cookie; a
    fresh one is issued when neither is present.
    """
    session_id = (
        request.headers.get(SESSION_HEADER) or request.cookies.get(SESSION_COOKIE) or ""
    ).strip() or uuid.uuid4().hex
    response.set_cookie(SESSION_COOKIE, session_id, httponly=True, samesite="lax")
    response.headers[SESSION_HEADER] = session_id
    return session_id


def get_controller(session_id: str = Depends(get_session_id)) -> ViewerController:
    """
    Per-session highlight, attached layers, view and status. Loaded layers are
    shared by all sessions through `get_registry()`.
    """
    with _sessions_lock:
        ctl = _sessions.get(session_id)
        if ctl is None:
            ctl = _new_session(session_id)
        return ctl


def reset_sessions() -> None:
    """
    Drop every session, the shared layer cache and the cached config. Used by
    tests and in dev after editing `config/viewer.yaml`.
    """
    with _sessions_lock:
        _sessions.clear()
    get_registry.cache_clear()
    clear_config_cache()


@app.get("/health")
def health():
    return {"ok": True}


@app.get("/layers")
def list_layers(ctl: ViewerController = Depends(get_controller)) -> list[ApiLayerInfo]:
    status = ctl.registry.status()
    out: list[ApiLayerInfo] = []
    for layer_cfg in ctl.config.layers:
        loaded = ctl.registry.get_loaded(layer_cfg.key)
        out.append(
            ApiLayerInfo(
                key=layer_cfg.key,
                title=layer_cfg.title,
                style=layer_cfg.style,
                status=status[layer_cfg.key],
                attached=loaded is not None and ctl.surface.has_layer(loaded),
            )
        )
    return out


@app.get("/basemaps")
def list_basemaps(ctl: ViewerController = Depends(get_controller)):
    return {
        "active": ctl.surface.basemap_id,
        "basemaps": [
            {"id": b.id, "title": b.title, "maxZoom": b.max_zoom}
            for b in ctl.surface.basemaps.values()
        ],
    }


@app.post("/basemap")
def set_basemap(body: ApiBasemapRequest, ctl: ViewerController = Depends(get_controller)):
    ctl.set_basemap(body.name)
    return {
        "active": ctl.surface.basemap_id,
        "status": ctl.status.message,
        "plot": build_map_plot(ctl.surface),
    }


@app.get("/autocomplete")
async def autocomplete(ctl: ViewerController = Depends(get_controller)) -> ApiAutocompleteResponse:
    lists = await ctl.on_ready()
    return ApiAutocompleteResponse(
        status=ctl.status.message,
        regions=lists.get("regions", []),
        provinces=lists.get("provinces", []),
        districts=lists.get("districts", []),
    )


@app.post("/search")
async def search(
    body: ApiSearchRequest, ctl: ViewerController = Depends(get_controller)
) -> ApiSearchResponse:
    outcome = await ctl.on_search(
        SearchCriteria(district=body.district, region=body.region, province=body.province),
        body.layers,
    )
    return ApiSearchResponse(
        status=outcome.status,
        found=outcome.feature is not None,
        feature=outcome.feature.to_geojson() if outcome.feature is not None else None,
        bounds=ApiBounds(**outcome.bounds.as_dict()) if outcome.bounds is not None else None,
        operations=[[op, key] for op, key in outcome.operations],
        plot=build_map_plot(ctl.surface),
    )


@app.post("/layers/sync")
async def sync(
    body: ApiSyncRequest, ctl: ViewerController = Depends(get_controller)
) -> ApiSyncResponse:
    outcome = await ctl.on_toggle(body.layers)
    return ApiSyncResponse(
        status=outcome.status,
        operations=[[op, key] for op, key in outcome.operations],
        plot=build_map_plot(ctl.surface),
    )


@app.get("/plot")
def plot(ctl: ViewerController = Depends(get_controller)):
    return build_map_plot(ctl.surface)


@app.post("/session/reset")
def reset_session(session_id: str = Depends(get_session_id)):
    """
    Fresh highlight, layers, view and status for this session; loaded layers stay cached.
    """
    with _sessions_lock:
        ctl = _new_session(session_id)
    return {"status": ctl.status.message, "plot": build_map_plot(ctl.surface)}


@app.delete("/session")
def end_session(session_id: str = Depends(get_session_id)):
    with _sessions_lock:
        ended = _sessions.pop(session_id, None) is not None
    return {"ended": ended}
