"""Campaign pipeline exceptions."""

from typing import Optional

GENERATION_FAILED_MESSAGE = (
    "Error generating sequence. Please check your AI configuration and try again."
)


class CampaignError(Exception):
    """Base class for campaign pipeline errors."""


class DraftValidationError(CampaignError):
    """A draft or its parameters failed validation."""

    def __init__(self, violations: list[str]):
        self.violations = list(violations)
        super().__init__("Please fix the following issues: " + ", ".join(self.violations))


class GenerationError(CampaignError):
    """Sequence generation failed; carries the user-facing message."""

    def __init__(self, message: str = GENERATION_FAILED_MESSAGE):
        super().__init__(message)


class GenerationInProgressError(CampaignError):
    """A generation run is already active for this draft."""


class GenerationCancelledError(CampaignError):
    """The draft moved on while generation was in flight."""


class MalformedOutputError(CampaignError):
    """The model returned something that cannot be turned into steps."""


class PersistenceError(CampaignError):
    """A row-store write failed during save."""

    def __init__(self, message: str, stage: Optional[str] = None):
        self.stage = stage
        super().__init__(message)


class InvalidTransitionError(CampaignError):
    """A lifecycle operation was invoked in the wrong state."""
