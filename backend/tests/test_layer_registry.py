from __future__ import annotations

import asyncio
import json
import threading
import time

import pytest
import requests

import layers.registry as registry_mod
from geojson_samples import DISTRICTS
from layers.errors import LoadError, RegistryError
from layers.registry import LayerRegistry, LayerSource


class _CountingFetch:
    def __init__(self, payload: dict, delay_s: float = 0.0):
        self.payload = json.dumps(payload).encode("utf-8")
        self.delay_s = delay_s
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def __call__(self, source: str) -> bytes:
        with self._lock:
            self.calls.append(source)
        if self.delay_s:
            time.sleep(self.delay_s)
        return self.payload


def _registry(fetch, tmp_path) -> LayerRegistry:
    return LayerRegistry(
        [LayerSource(key="distritos", source="data_distritos.geojson", title="Distritos")],
        base_dir=tmp_path,
        fetch=fetch,
    )


def test_load_fetches_once_and_caches(tmp_path):
    fetch = _CountingFetch(DISTRICTS)
    reg = _registry(fetch, tmp_path)
    assert reg.status() == {"distritos": "not_loaded"}

    async def run():
        a = await reg.load("distritos")
        b = await reg.load("distritos")
        return a, b

    a, b = asyncio.run(run())
    assert a is b
    assert len(fetch.calls) == 1
    assert reg.status() == {"distritos": "loaded"}
    assert reg.get_loaded("distritos") is a
    assert a.title == "Distritos"
    assert len(a.features) == len(DISTRICTS["features"])


def test_overlapping_loads_share_one_fetch(tmp_path):
    fetch = _CountingFetch(DISTRICTS, delay_s=0.05)
    reg = _registry(fetch, tmp_path)

    async def run():
        return await asyncio.gather(*(reg.load("distritos") for _ in range(5)))

    results = asyncio.run(run())
    assert len(fetch.calls) == 1
    assert all(r is results[0] for r in results)


def test_unknown_key_raises_registry_error(tmp_path):
    reg = _registry(_CountingFetch(DISTRICTS), tmp_path)
    with pytest.raises(RegistryError) as exc:
        asyncio.run(reg.load("lagos"))
    assert exc.value.key == "lagos"
    with pytest.raises(RegistryError):
        reg.is_loaded("lagos")


def test_missing_file_raises_load_error_and_slot_stays_retryable(tmp_path):
    reg = LayerRegistry(
        [LayerSource(key="distritos", source="data_distritos.geojson")], base_dir=tmp_path
    )
    with pytest.raises(LoadError) as exc:
        asyncio.run(reg.load("distritos"))
    assert exc.value.source == "data_distritos.geojson"
    assert reg.status() == {"distritos": "not_loaded"}

    (tmp_path / "data_distritos.geojson").write_text(json.dumps(DISTRICTS), encoding="utf-8")
    layer = asyncio.run(reg.load("distritos"))
    assert len(layer.features) == len(DISTRICTS["features"])


def test_non_feature_collection_raises_load_error(tmp_path):
    (tmp_path / "bad.geojson").write_text(json.dumps({"type": "Feature"}), encoding="utf-8")
    (tmp_path / "broken.geojson").write_text("{not json", encoding="utf-8")
    reg = LayerRegistry(
        [
            LayerSource(key="bad", source="bad.geojson"),
            LayerSource(key="broken", source="broken.geojson"),
        ],
        base_dir=tmp_path,
    )
    with pytest.raises(LoadError):
        asyncio.run(reg.load("bad"))
    with pytest.raises(LoadError):
        asyncio.run(reg.load("broken"))


class _FakeResponse:
    def __init__(self, status_code: int, content: bytes = b""):
        self.status_code = status_code
        self.content = content

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400


def test_http_source_non_success_status_raises_load_error(tmp_path, monkeypatch):
    monkeypatch.setattr(
        registry_mod.requests, "get", lambda url, timeout: _FakeResponse(404)
    )
    reg = LayerRegistry(
        [LayerSource(key="za", source="https://example.org/data_za.geojson")],
        base_dir=tmp_path,
    )
    with pytest.raises(LoadError) as exc:
        asyncio.run(reg.load("za"))
    assert "404" in exc.value.reason


def test_http_source_unreachable_raises_load_error(tmp_path, monkeypatch):
    def boom(url, timeout):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(registry_mod.requests, "get", boom)
    reg = LayerRegistry(
        [LayerSource(key="za", source="https://example.org/data_za.geojson")],
        base_dir=tmp_path,
    )
    with pytest.raises(LoadError):
        asyncio.run(reg.load("za"))


def test_http_source_success(tmp_path, monkeypatch):
    body = json.dumps(DISTRICTS).encode("utf-8")
    monkeypatch.setattr(
        registry_mod.requests, "get", lambda url, timeout: _FakeResponse(200, body)
    )
    reg = LayerRegistry(
        [LayerSource(key="distritos", source="https://example.org/d.geojson")],
        base_dir=tmp_path,
    )
    layer = asyncio.run(reg.load("distritos"))
    assert layer.features[0].props["DISTRITO"] == "Iquitos"


def test_duplicate_keys_rejected(tmp_path):
    with pytest.raises(ValueError):
        LayerRegistry(
            [LayerSource(key="a", source="a.geojson"), LayerSource(key="a", source="b.geojson")],
            base_dir=tmp_path,
        )
