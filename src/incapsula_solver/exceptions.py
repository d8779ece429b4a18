"""Errors raised during a challenge resolution attempt.

None of these are retried inside the resolver. Each one ends the attempt and
reaches the caller, which owns the page and decides whether to release it or
start over with a fresh navigation.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .connectors.incapsula.interfaces import ResolutionState


class ChallengeResolutionError(Exception):
    """Base class for every resolution failure.

    Attributes:
        state: Resolver state at the moment the error was raised, filled in by
            the resolver when it transitions to FAILED.
    """

    def __init__(self, message: str, state: Optional["ResolutionState"] = None):
        super().__init__(message)
        self.state = state


class CapturePayloadMissing(ChallengeResolutionError):
    """The challenge init payload was never captured in time."""


class MarkupExtractionFailed(ChallengeResolutionError):
    """The resource frame, the error element or the URL markers were absent."""


class SolveFailed(ChallengeResolutionError):
    """The solving service gave no usable answer."""


class ResubmissionIOError(ChallengeResolutionError):
    """The in-page resubmission request could not be issued."""


class CredentialUnavailable(ChallengeResolutionError):
    """The secret provider could not supply the solving-service credential."""
