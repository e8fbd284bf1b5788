from .helpers import BlurConfig, ChainConfig, StoreConfig, MAX_BLUR_RADIUS, ensure_dir, list_images
from .errors import ErrorKind, StageError
from .store import ArtifactStore, ArtifactLocator
from .blur import GaussianBlurrer
from .mask import CircleMasker
from .stages import (
    Ok, Failed, StageResult, JobContext, Stage,
    CleanupStage, BlurStage, MaskStage, SaveStage, stages_from_config,
)
from .notifier import Notifier, LoggingNotifier, RecordingNotifier
from .coordinator import ChainCoordinator, JobOutcome, JobState
from .scheduler import JobScheduler, JobHandle

__all__ = [
    "BlurConfig", "ChainConfig", "StoreConfig", "MAX_BLUR_RADIUS", "ensure_dir", "list_images",
    "ErrorKind", "StageError",
    "ArtifactStore", "ArtifactLocator",
    "GaussianBlurrer", "CircleMasker",
    "Ok", "Failed", "StageResult", "JobContext", "Stage",
    "CleanupStage", "BlurStage", "MaskStage", "SaveStage", "stages_from_config",
    "Notifier", "LoggingNotifier", "RecordingNotifier",
    "ChainCoordinator", "JobOutcome", "JobState",
    "JobScheduler", "JobHandle",
]
