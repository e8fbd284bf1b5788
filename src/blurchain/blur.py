from __future__ import annotations
import math
from typing import Optional

import cv2
import numpy as np

from .errors import ErrorKind, StageError
from .helpers import BlurConfig, MAX_BLUR_RADIUS


def kernel_for_radius(radius: float) -> tuple[int, float]:
    """(odd kernel size, sigma) covering `radius` pixels on each side."""
    ksize = 2 * int(math.ceil(radius)) + 1
    sigma = max(radius / 3.0, 0.3)
    return ksize, sigma


class GaussianBlurrer:
    """Separable Gaussian blur (any channel count in, same shape out)."""

    def __init__(self, config: Optional[BlurConfig] = None) -> None:
        self.config = config or BlurConfig()

    @staticmethod
    def check_radius(radius: float) -> None:
        if not 0 < radius <= MAX_BLUR_RADIUS:
            raise StageError(
                ErrorKind.INVALID_PARAMETER,
                f"blur radius must be in (0, {MAX_BLUR_RADIUS:g}], got {radius}",
            )

    def run(self, img: np.ndarray, radius: Optional[float] = None) -> np.ndarray:
        r = self.config.radius if radius is None else radius
        self.check_radius(r)
        if img.size == 0:
            raise StageError(ErrorKind.INVALID_PARAMETER, f"cannot blur an empty image {img.shape}")
        ksize, sigma = kernel_for_radius(r)
        try:
            # GaussianBlur allocates its own destination; input stays untouched
            out = cv2.GaussianBlur(img, (ksize, ksize), sigmaX=sigma, sigmaY=sigma)
        except (cv2.error, MemoryError) as e:
            raise StageError(ErrorKind.PROCESSING_ERROR, f"blur failed: {e}") from e
        # single channel arrays may come back 2-D; keep the caller's shape
        return out.reshape(img.shape)
