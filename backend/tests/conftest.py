import sys
from pathlib import Path

import pytest


# Ensure `backend/` is on sys.path so tests can import local modules
# like `layers.*`, `search.*`, and `main`.
BACKEND_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BACKEND_ROOT))

from geojson_samples import viewer_config_dict, write_data_dir  # noqa: E402
from viewer.controller import ViewerController  # noqa: E402
from viewer.types import ViewerConfig  # noqa: E402


@pytest.fixture
def data_dir(tmp_path):
    return write_data_dir(tmp_path / "peru")


@pytest.fixture
def viewer_config(data_dir):
    return ViewerConfig.model_validate(viewer_config_dict(data_dir))


@pytest.fixture
def controller(viewer_config):
    return ViewerController(viewer_config)
