"""Test configuration and fixtures."""
from __future__ import annotations
import os
import sys
from pathlib import Path

import cv2
import numpy as np
import pytest

# Make `fieldscan` importable in tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from fieldscan.config import ScanConfig, ENV_PREFIX
from tests.utils.fake_engine import ScriptedEngine


def pytest_sessionstart(session):
    """Set up test environment before session."""
    repo_tessdata = ROOT / "tessdata"
    if repo_tessdata.is_dir():
        os.environ.setdefault("TESSDATA_PREFIX", str(repo_tessdata))
    os.environ.setdefault("PYTHONIOENCODING", "utf-8")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep FIELDSCAN_* settings from the developer shell out of the tests"""
    for key in list(os.environ):
        if key.startswith(ENV_PREFIX):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def config():
    # zero delays keep driver tests fast
    return ScanConfig(
        blur_delay=0.0,
        scanning_delay=0.0,
        detecting_delay=0.0,
        card_found_delay=0.0,
        card_scanning_delay=0.0,
        busy_delay=0.0,
        ocr_timeout=2.0,
    )


@pytest.fixture
def sharp_image():
    """Noise-textured BGR frame, far above the sharpness threshold"""
    rng = np.random.default_rng(7)
    return rng.integers(0, 256, size=(720, 1280, 3), dtype=np.uint8)


@pytest.fixture
def blurry_image(sharp_image):
    return cv2.GaussianBlur(sharp_image, (0, 0), sigmaX=12)


@pytest.fixture
def engine():
    return ScriptedEngine()
