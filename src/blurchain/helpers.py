from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple

import cv2
import numpy as np
import os


DEFAULT_JOB_NAME = "image_manipulation_work"
DEFAULT_OUTPUT_DIR = "blur_filter_outputs"
OUTPUT_ROOT_ENV = "BLURCHAIN_OUTPUT_ROOT"

# Upper bound of the blur primitive the chain was modelled on
MAX_BLUR_RADIUS = 25.0


# Config dataclasses (lightweight & reusable)

@dataclass
class BlurConfig:
    radius: float = 10.0        # 0 < radius <= MAX_BLUR_RADIUS

    def __post_init__(self) -> None:
        if not 0 < self.radius <= MAX_BLUR_RADIUS:
            raise ValueError(f"blur radius must be in (0, {MAX_BLUR_RADIUS:g}], got {self.radius}")


@dataclass
class ChainConfig:
    blur: BlurConfig = field(default_factory=BlurConfig)
    blur_passes: int = 1        # how many Blur stages run back to back
    circle_mask: bool = True    # crop to centred square + circular alpha

    def __post_init__(self) -> None:
        if self.blur_passes < 0:
            raise ValueError("blur_passes must be >= 0")


@dataclass
class StoreConfig:
    root: str = DEFAULT_OUTPUT_DIR
    file_ext: str = "png"


def output_root_from_env(default: str = DEFAULT_OUTPUT_DIR) -> str:
    return os.environ.get(OUTPUT_ROOT_ENV) or default


# I/O & filesystem helpers

def ensure_dir(path: str | os.PathLike) -> None:
    Path(path).mkdir(parents=True, exist_ok=True)


def encode_png(img: np.ndarray) -> bytes:
    ok, buf = cv2.imencode(".png", img)
    if not ok:
        raise ValueError("PNG encoding failed")
    return buf.tobytes()


def decode_image(data: bytes) -> np.ndarray | None:
    arr = np.frombuffer(data, dtype=np.uint8)
    if arr.size == 0:
        return None
    return cv2.imdecode(arr, cv2.IMREAD_UNCHANGED)


def channel_count(img: np.ndarray) -> int:
    return 1 if img.ndim == 2 else int(img.shape[2])


def list_images(
    dir_path: str | os.PathLike,
    extensions: Tuple[str, ...] = (".png", ".jpg", ".jpeg", ".tif", ".tiff", ".bmp", ".webp"),
) -> List[str]:
    p = Path(dir_path)
    return [
        str(fp) for fp in sorted(p.iterdir())
        if fp.is_file() and fp.suffix.lower() in extensions
    ]
