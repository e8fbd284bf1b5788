from __future__ import annotations
import logging
import os
import shutil
import tempfile
import uuid
from pathlib import Path
from typing import List, Optional
from urllib.parse import unquote, urlparse

import numpy as np

from .errors import ErrorKind, StageError
from .helpers import StoreConfig, decode_image, encode_png, ensure_dir

logger = logging.getLogger(__name__)

ArtifactLocator = str


class ArtifactStore:
    """
    Namespaced image artifacts on the local filesystem.

    Layout: <root>/<job_name>/<prefix>-<uuid>.<ext>
    Locators are file:// URIs; every write mints a fresh one.
    Each namespace is written by one job run at a time (the scheduler keeps
    a single live run per name), so there is no locking here.
    """

    def __init__(self, config: Optional[StoreConfig] = None) -> None:
        self.config = config or StoreConfig()
        self.root = Path(self.config.root).expanduser().resolve()

    # namespaces

    @staticmethod
    def _check_job_name(job_name: str) -> None:
        if not job_name or job_name in (".", "..") or "/" in job_name or "\\" in job_name:
            raise StageError(ErrorKind.INVALID_PARAMETER, f"invalid job name: {job_name!r}")

    def namespace(self, job_name: str) -> Path:
        self._check_job_name(job_name)
        return self.root / job_name

    # locators

    def locator_for(self, path: str | os.PathLike) -> ArtifactLocator:
        return Path(path).resolve().as_uri()

    def path_for(self, locator: ArtifactLocator) -> Path:
        parsed = urlparse(locator)
        if parsed.scheme != "file":
            raise StageError(ErrorKind.NOT_FOUND, f"unsupported locator: {locator}")
        path = Path(unquote(parsed.path))
        if self.root != path and self.root not in path.parents:
            raise StageError(ErrorKind.NOT_FOUND, f"locator outside store: {locator}")
        return path

    def in_namespace(self, locator: ArtifactLocator, job_name: str) -> bool:
        try:
            return self.path_for(locator).parent == self.namespace(job_name)
        except StageError:
            return False

    # write / read

    def write(self, data: bytes, job_name: str, prefix: str = "blur-filter-output") -> ArtifactLocator:
        ns = self.namespace(job_name)
        name = f"{prefix}-{uuid.uuid4()}.{self.config.file_ext}"
        target = ns / name
        tmp_name = None
        try:
            ensure_dir(ns)
            # temp file + rename: readers never see a partial artifact
            fd, tmp_name = tempfile.mkstemp(dir=ns, prefix=".tmp-")
            try:
                fh = os.fdopen(fd, "wb")
            except OSError:
                os.close(fd)
                raise
            with fh:
                fh.write(data)
            os.replace(tmp_name, target)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StageError(ErrorKind.STORAGE_UNAVAILABLE, f"cannot write {target}: {e}") from e
        logger.debug("wrote %s (%d bytes)", target, len(data))
        return self.locator_for(target)

    def write_image(self, img: np.ndarray, job_name: str, prefix: str = "blur-filter-output") -> ArtifactLocator:
        try:
            data = encode_png(img)
        except Exception as e:  # cv2.error, ValueError
            raise StageError(ErrorKind.PROCESSING_ERROR, f"PNG encoding failed: {e}") from e
        return self.write(data, job_name, prefix=prefix)

    def import_file(self, path: str | os.PathLike, job_name: str, prefix: str = "blur-filter-input") -> ArtifactLocator:
        src = Path(path)
        if not src.is_file():
            raise StageError(ErrorKind.NOT_FOUND, f"no such input file: {src}")
        return self.write(src.read_bytes(), job_name, prefix=prefix)

    def read_bytes(self, locator: ArtifactLocator) -> bytes:
        path = self.path_for(locator)
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise StageError(ErrorKind.NOT_FOUND, f"no artifact at {locator}") from e
        except OSError as e:
            raise StageError(ErrorKind.STORAGE_UNAVAILABLE, f"cannot read {locator}: {e}") from e

    def read(self, locator: ArtifactLocator) -> np.ndarray:
        img = decode_image(self.read_bytes(locator))
        if img is None:
            raise StageError(ErrorKind.DECODE_ERROR, f"not a decodable image: {locator}")
        return img

    # housekeeping

    def list(self, job_name: str) -> List[ArtifactLocator]:
        ns = self.namespace(job_name)
        if not ns.is_dir():
            return []
        return [self.locator_for(p) for p in sorted(ns.iterdir())
                if p.is_file() and not p.name.startswith(".tmp-")]

    def clear(self, job_name: str) -> int:
        """Delete everything under the namespace. Missing namespace is a no-op."""
        ns = self.namespace(job_name)
        if not ns.is_dir():
            return 0
        removed = 0
        for entry in ns.iterdir():
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink(missing_ok=True)
            removed += 1
            logger.debug("deleted %s", entry)
        return removed
