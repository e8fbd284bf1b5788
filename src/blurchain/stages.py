from __future__ import annotations
import logging
import threading
from dataclasses import dataclass, field
from typing import List, Optional, Union

from .blur import GaussianBlurrer
from .errors import ErrorKind, StageError
from .helpers import BlurConfig, ChainConfig, decode_image
from .mask import CircleMasker
from .store import ArtifactLocator, ArtifactStore

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
FINAL_PREFIX = "blur-filter-final"


@dataclass(frozen=True)
class Ok:
    locator: ArtifactLocator


@dataclass(frozen=True)
class Failed:
    kind: ErrorKind
    message: str


StageResult = Union[Ok, Failed]


@dataclass
class JobContext:
    """Per-run state. Built when a run starts, dropped when it terminates."""
    job_name: str
    stages: List["Stage"]
    notifier: object                          # Notifier
    current: Optional[ArtifactLocator] = None
    cancel_event: threading.Event = field(default_factory=threading.Event)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()


class Stage:
    """One step of the chain: current artifact in, one new artifact out."""

    name = "stage"
    needs_input = True

    def run(self, ctx: JobContext, store: ArtifactStore) -> StageResult:
        raise NotImplementedError

    def __call__(self, ctx: JobContext, store: ArtifactStore) -> StageResult:
        if self.needs_input and ctx.current is None:
            return Failed(ErrorKind.NOT_FOUND, f"{self.name}: no input artifact")
        try:
            return self.run(ctx, store)
        except StageError as e:
            return Failed(e.kind, e.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class CleanupStage(Stage):
    """
    Empty the job namespace so every run starts clean.
    Best effort: a failed cleanup is logged and the chain carries on.
    An input artifact living inside the namespace is carried over.
    """

    name = "cleanup"
    needs_input = False

    def run(self, ctx: JobContext, store: ArtifactStore) -> StageResult:
        keep = None
        if ctx.current is not None and store.in_namespace(ctx.current, ctx.job_name):
            try:
                keep = store.read_bytes(ctx.current)
            except StageError:
                logger.warning("input %s unreadable before cleanup", ctx.current, exc_info=True)
        try:
            removed = store.clear(ctx.job_name)
            logger.info("cleanup of %r removed %d entries", ctx.job_name, removed)
        except Exception:
            logger.warning("cleanup of %r failed; continuing", ctx.job_name, exc_info=True)
        if keep is not None:
            try:
                ctx.current = store.write(keep, ctx.job_name, prefix="blur-filter-input")
            except StageError:
                logger.warning("could not restore input for %r", ctx.job_name, exc_info=True)
        return Ok(ctx.current or "")


class BlurStage(Stage):
    name = "blur"

    def __init__(self, radius: float = BlurConfig.radius) -> None:
        self.radius = float(radius)

    def run(self, ctx: JobContext, store: ArtifactStore) -> StageResult:
        img = store.read(ctx.current)
        out = GaussianBlurrer().run(img, radius=self.radius)
        return Ok(store.write_image(out, ctx.job_name))

    def __repr__(self) -> str:
        return f"BlurStage(radius={self.radius:g})"


class MaskStage(Stage):
    name = "mask"

    def run(self, ctx: JobContext, store: ArtifactStore) -> StageResult:
        img = store.read(ctx.current)
        out = CircleMasker().run(img)
        return Ok(store.write_image(out, ctx.job_name))


class SaveStage(Stage):
    """Persist the final artifact as PNG; its locator is the job's result."""

    name = "save"

    def run(self, ctx: JobContext, store: ArtifactStore) -> StageResult:
        data = store.read_bytes(ctx.current)
        if data.startswith(PNG_SIGNATURE) and decode_image(data) is not None:
            return Ok(store.write(data, ctx.job_name, prefix=FINAL_PREFIX))
        img = decode_image(data)
        if img is None:
            raise StageError(ErrorKind.DECODE_ERROR, f"not a decodable image: {ctx.current}")
        return Ok(store.write_image(img, ctx.job_name, prefix=FINAL_PREFIX))


def stages_from_config(config: Optional[ChainConfig] = None) -> List[Stage]:
    """Transform stages between cleanup and save."""
    cfg = config or ChainConfig()
    stages: List[Stage] = [BlurStage(cfg.blur.radius) for _ in range(cfg.blur_passes)]
    if cfg.circle_mask:
        stages.append(MaskStage())
    return stages
