"""
Error taxonomy for the clipping workflow.

Each boundary (search, acquisition, transcode) catches library-specific
failures and re-raises one of these coarse categories with a readable
message. The API layer maps categories to status codes.
"""

from enum import Enum
from typing import Optional

from .models import PipelineStage


class ClipError(Exception):
    """Base class for all clipping errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InputError(ClipError):
    """Missing or empty identifier or query."""
    pass


class UpstreamError(ClipError):
    """
    Search or acquisition provider failure.

    `transient` separates failures worth trying again later (network,
    rate limits) from permanent ones (not found, rejected).
    """

    def __init__(self, message: str, transient: bool = False, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.transient = transient
        self.detail = detail


class ConfigurationError(UpstreamError):
    """Provider cannot be called because a credential is missing."""
    pass


class AcquisitionErrorKind(Enum):
    NOT_FOUND = "not_found"
    UPSTREAM_REJECTED = "upstream_rejected"
    NETWORK_FAILURE = "network_failure"


class AcquisitionError(UpstreamError):
    """The source video could not be resolved or streamed."""

    def __init__(self, kind: AcquisitionErrorKind, message: str) -> None:
        super().__init__(
            message,
            transient=kind == AcquisitionErrorKind.NETWORK_FAILURE,
        )
        self.kind = kind


class PipelineError(ClipError):
    """A transcode stage failed. Tagged with the stage that failed."""

    def __init__(self, stage: PipelineStage, message: str) -> None:
        super().__init__(message)
        self.stage = stage

    def __str__(self) -> str:
        return f"{self.stage.value} failed: {self.message}"


class JobInProgressError(ClipError):
    """Another clip job is already running."""
    pass
