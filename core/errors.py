"""
Error types raised by the generation and gallery layers.
"""
from typing import Optional


class GalleryError(Exception):
    """Base class for all gallery errors."""


class GenerationError(GalleryError):
    """A video generation job did not produce usable output."""


class EmptyResult(GenerationError):
    """The job completed but returned no videos."""


class JobFailed(GenerationError):
    """The backend reported the job as failed."""


class TransferError(GenerationError):
    """Downloading a finished video from its remote reference failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PromptGenerationError(GalleryError):
    """The text backend returned no usable prompts."""


class PersistenceReadError(GalleryError):
    """Stored gallery data is malformed."""


class PersistenceWriteError(GalleryError):
    """Gallery data could not be written."""


class InvalidTransition(GalleryError):
    """A user action arrived in a state that does not accept it."""

    def __init__(self, action: str, state: str):
        super().__init__(f"Cannot {action} while {state}")
        self.action = action
        self.state = state
