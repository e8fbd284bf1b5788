"""Shared test fixtures."""

from __future__ import annotations

import numpy as np
import pytest
from skimage.draw import disk

from blurchain import ArtifactStore, RecordingNotifier, StoreConfig


def make_test_image(width: int, height: int, channels: int = 3, seed: int = 0) -> np.ndarray:
    """Opaque synthetic uint8 image: light background with a few coloured blobs."""
    rng = np.random.default_rng(seed)
    shape = (height, width) if channels == 1 else (height, width, channels)
    img = np.full(shape, 230, np.uint8)
    if channels == 4:
        img[..., 3] = 255
    if width == 0 or height == 0:
        return img
    for _ in range(12):
        y, x = rng.integers(0, height), rng.integers(0, width)
        r = int(rng.integers(3, max(4, min(width, height) // 6)))
        rr, cc = disk((y, x), r, shape=(height, width))
        color = rng.integers(0, 200, size=channels)
        if channels == 4:
            color[3] = 255
        img[rr, cc] = color if channels > 1 else color[0]
    return img


@pytest.fixture()
def store(tmp_path) -> ArtifactStore:
    return ArtifactStore(StoreConfig(root=str(tmp_path / "outputs")))


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def input_locator(store):
    """400x300 opaque BGR image stored outside the job namespace."""
    return store.write_image(make_test_image(400, 300), "inputs", prefix="blur-filter-input")


@pytest.fixture()
def make_image():
    return make_test_image
