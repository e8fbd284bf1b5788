from __future__ import annotations
from enum import Enum


class ErrorKind(str, Enum):
    INVALID_PARAMETER = "invalid_parameter"        # bad stage config, never retried
    DECODE_ERROR = "decode_error"                  # stored bytes are not an image
    PROCESSING_ERROR = "processing_error"          # image engine could not do the work
    STORAGE_UNAVAILABLE = "storage_unavailable"    # output medium not creatable/writable
    NOT_FOUND = "not_found"                        # unknown locator
    CANCELLED = "cancelled"                        # superseded by a newer run

    @property
    def retryable(self) -> bool:
        return self in (ErrorKind.DECODE_ERROR, ErrorKind.PROCESSING_ERROR)


class StageError(Exception):
    """Typed failure raised by the store and the image primitives."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(f"{kind.value}: {message}")
        self.kind = kind
        self.message = message
