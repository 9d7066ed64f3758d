"""
STORYFRAME error taxonomy

Every error raised by the pipeline derives from StoryframeError. Errors that
concern a single character or scene carry a ``scope`` naming that item so
the session can surface one message that identifies it.
"""

from typing import Optional


class StoryframeError(Exception):
    """Base class for all pipeline errors."""

    def __init__(self, message: str, scope: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.scope = scope


class ValidationError(StoryframeError):
    """Bad local input. Raised before any gateway call is made."""


class AnalysisError(StoryframeError):
    """Story breakdown failed (gateway error, malformed JSON or schema violation)."""


class GenerationError(StoryframeError):
    """A single image or video generation failed."""


class PreconditionError(StoryframeError):
    """An action was invoked before its dependency was satisfied."""


class CredentialError(StoryframeError):
    """No usable API key, or the remote service rejected the active one."""


class ProjectImportError(StoryframeError):
    """A project document is not parseable or lacks required fields."""


class DecodeError(StoryframeError):
    """Image bytes could not be decoded."""


class ExtractionError(StoryframeError):
    """Narrative text could not be extracted from an uploaded document."""
