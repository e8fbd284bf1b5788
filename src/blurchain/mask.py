from __future__ import annotations
from dataclasses import dataclass

import cv2
import numpy as np

from .errors import ErrorKind, StageError


def to_bgra(img: np.ndarray) -> np.ndarray:
    """Gray, BGR or BGRA uint8 -> new BGRA array."""
    if img.ndim == 2 or img.shape[2] == 1:
        return cv2.cvtColor(img.reshape(img.shape[:2]), cv2.COLOR_GRAY2BGRA)
    if img.shape[2] == 3:
        return cv2.cvtColor(img, cv2.COLOR_BGR2BGRA)
    if img.shape[2] == 4:
        return img.copy()
    raise StageError(ErrorKind.INVALID_PARAMETER, f"unsupported channel count: {img.shape[2]}")


def circle_coverage(side: int) -> np.ndarray:
    """
    Float coverage in [0, 1] of a disc of radius side/2 centred on a side x side grid.
    Pixel centres sit at (i + 0.5); the half-pixel ramp gives a 1px anti-aliased edge.
    """
    r = side / 2.0
    yy, xx = np.ogrid[:side, :side]
    d = np.sqrt((xx + 0.5 - r) ** 2 + (yy + 0.5 - r) ** 2)
    return np.clip(r - d + 0.5, 0.0, 1.0)


@dataclass
class CenterCrop:
    side: int
    left: int   # canvas offset of the source, <= 0
    top: int


class CircleMasker:
    """Crop to the largest centred square, then make everything outside the inscribed circle transparent."""

    @staticmethod
    def geometry(width: int, height: int) -> CenterCrop:
        side = min(width, height)
        # truncate toward zero like an integer divide on the drawing side
        return CenterCrop(side=side, left=-((width - side) // 2), top=-((height - side) // 2))

    def run(self, img: np.ndarray) -> np.ndarray:
        h, w = img.shape[:2]
        if w == 0 or h == 0:
            raise StageError(ErrorKind.INVALID_PARAMETER, f"image has zero width or height ({w}x{h})")
        g = self.geometry(w, h)
        try:
            bgra = to_bgra(img)
            x0, y0 = -g.left, -g.top
            canvas = np.ascontiguousarray(bgra[y0:y0 + g.side, x0:x0 + g.side])
            cover = circle_coverage(g.side)
            alpha = canvas[..., 3].astype(np.float32) * cover
            canvas[..., 3] = np.rint(alpha).astype(canvas.dtype)
        except (cv2.error, MemoryError) as e:
            raise StageError(ErrorKind.PROCESSING_ERROR, f"mask failed: {e}") from e
        return canvas
