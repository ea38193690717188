"""Exceptions raised by the feedback pipeline."""

from typing import Optional


class FeedbackPipelineError(Exception):
    """Base class for pipeline errors."""


class ConfigurationError(FeedbackPipelineError):
    """Required configuration (e.g. spreadsheet credentials) is missing."""


class DuplicateFeedbackError(FeedbackPipelineError):
    """A feedback item with the same content fingerprint is already stored."""

    def __init__(self, content_hash: str, existing_id: Optional[str] = None):
        self.content_hash = content_hash
        self.existing_id = existing_id
        super().__init__(f"Feedback with content hash {content_hash} already exists")


class FeedbackNotFoundError(FeedbackPipelineError):
    """The feedback row a run is writing to no longer exists."""

    def __init__(self, feedback_id: str):
        self.feedback_id = feedback_id
        super().__init__(f"Feedback {feedback_id} not found")


class SourceFetchError(FeedbackPipelineError):
    """An external row source could not be read."""
