"""Data structures for the Incapsula GeeTest connector.

This module defines the values exchanged between the interceptor, the
extractor, the solver and the resolver during one resolution attempt. All of
them are frozen: a value captured for one reload cycle must never be patched
up and reused for another, since the protection layer rejects submissions
that mix tokens from different cycles.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from ...exceptions import CapturePayloadMissing, SolveFailed

RESOURCE_PATH = "/_Incapsula_Resource"
GEETEST_RESOURCE_QUERY = "SWCGHOEL=gee"


class ResolutionState(Enum):
    """Resolver states.

    A resolution attempt moves strictly forward through these states.
    FAILED can be reached from any state except RELOADED.
    """
    IDLE = "idle"
    INTERCEPTING = "intercepting"  # Handlers installed, navigation may start
    AWAITING_MARKUP = "awaiting_markup"  # Dwell over, retry markup expected
    EXTRACTED = "extracted"  # dai/cts recovered from the markup
    SOLVING = "solving"  # Challenge handed to the solving service
    RESUBMITTING = "resubmitting"  # Answer posted from inside the page
    RELOADED = "reloaded"  # Original URL requested again
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ResolutionState.RELOADED, ResolutionState.FAILED)


@dataclass(frozen=True)
class ChallengeInitPayload:
    """Challenge description returned by the GeeTest init endpoint.

    Attributes:
        gt: Challenge-class id (the GeeTest public key of the site).
        challenge: Per-session challenge token.
        raw: The complete JSON document, kept for logging and debugging.
    """
    gt: str
    challenge: str
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_json(cls, data: Any) -> "ChallengeInitPayload":
        if not isinstance(data, Mapping):
            raise CapturePayloadMissing(
                f"challenge init response is not a JSON object: {type(data).__name__}"
            )

        gt = data.get("gt")
        challenge = data.get("challenge")
        if not gt or not challenge:
            raise CapturePayloadMissing(
                "challenge init response lacks 'gt' or 'challenge'"
            )

        return cls(gt=str(gt), challenge=str(challenge), raw=dict(data))


@dataclass(frozen=True)
class SessionSubmissionParams:
    """The dai/cts pair scoping one retry cycle of the resource handler."""
    dai: str
    cts: str

    @property
    def resource_path(self) -> str:
        """Path the protection layer's own script posts the answer to.

        The tokens are already URL-safe as served, so they are placed verbatim.
        """
        return (
            f"{RESOURCE_PATH}?{GEETEST_RESOURCE_QUERY}"
            f"&dai={self.dai}&cts={self.cts}"
        )


@dataclass(frozen=True)
class SolvedAnswerPayload:
    """The three tokens the protection layer accepts as a solved challenge."""
    geetest_challenge: str
    geetest_validate: str
    geetest_seccode: str

    FIELDS = ("geetest_challenge", "geetest_validate", "geetest_seccode")

    @classmethod
    def from_result(cls, result: Optional[Any]) -> "SolvedAnswerPayload":
        """Validate a raw solving-service result.

        Raises:
            SolveFailed: If the result is not a mapping holding all three
                non-empty fields. This covers exhausted polling (the
                not-ready sentinel string) and service error codes alike.
        """
        if not isinstance(result, Mapping):
            raise SolveFailed(f"failed to solve challenge: {result!r}")

        missing = [name for name in cls.FIELDS if not result.get(name)]
        if missing:
            raise SolveFailed(
                f"failed to solve challenge: missing {', '.join(missing)}"
            )

        return cls(**{name: str(result[name]) for name in cls.FIELDS})

    def to_form_body(self) -> str:
        """Render the request body the protection layer's own script sends.

        Values are joined raw, so the "|" in the seccode is not escaped.
        """
        return "&".join(f"{name}={getattr(self, name)}" for name in self.FIELDS)

    def as_dict(self) -> Dict[str, str]:
        return {name: getattr(self, name) for name in self.FIELDS}
