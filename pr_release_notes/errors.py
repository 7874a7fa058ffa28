from typing import Optional


class ReleaseNoteError(Exception):
    """Base class for errors raised while building a release note."""


class ConfigurationError(ReleaseNoteError):
    """Raised when the run configuration cannot be used as given."""


class ServiceError(ReleaseNoteError):
    """The text generation service did not return a successful response."""

    def __init__(self, status_code: Optional[int], body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Anthropic API error: {status_code} - {body}")


class DecodeError(ReleaseNoteError):
    """The service reply could not be read as a summary."""


class PullRequestNotEligible(ReleaseNoteError):
    """The triggering event is not a pull request merged into the base branch."""
