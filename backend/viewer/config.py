from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

import yaml

from viewer.types import ViewerConfig


def _repo_root() -> Path:
    # .../backend/viewer/config.py -> repo root is 2 levels up
    return Path(__file__).resolve().parents[2]


def config_path() -> Path:
    return Path(
        os.getenv("PERU_VIEWER_CONFIG") or (_repo_root() / "config" / "viewer.yaml")
    )


def resolve_repo_path(repo_relative: str) -> Path:
    # Allow both "data/..." and "/data/..." inputs (normalize to repo-relative).
    rel = (repo_relative or "").lstrip("/")
    return _repo_root() / rel


def resolve_data_root(data_root: str) -> Path:
    p = Path(data_root or "")
    if p.is_absolute():
        return p
    return resolve_repo_path(str(p))


def _load_yaml(path: Path) -> dict:
    raw = path.read_text(encoding="utf-8")
    data = yaml.safe_load(raw) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid viewer yaml root: {path}")
    return data


def load_config(path: Path) -> ViewerConfig:
    return ViewerConfig.model_validate(_load_yaml(path))


@lru_cache(maxsize=1)
def get_config() -> ViewerConfig:
    return load_config(config_path())


def clear_config_cache() -> None:
    """
    Clear the cached viewer config.

    Useful during development and in tests that point `PERU_VIEWER_CONFIG`
    at a temporary file.
    """
    get_config.cache_clear()
