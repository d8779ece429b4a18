"""Incapsula Connector Package.

This package resolves the GeeTest challenge the Incapsula protection layer
injects into a page load:
- Interception of the challenge script and of the init payload
- Extraction of the dai/cts submission parameters
- Resolution orchestration and in-page resubmission
"""

# Main resolver implementation
from .resolver import IncapsulaGeeTestResolver

# Building blocks, usable on their own
from .extractor import extract_submission_params, parse_submission_params
from .interceptor import ChallengeInterceptor

# Data structures
from .interfaces import (
    ChallengeInitPayload,
    ResolutionState,
    SessionSubmissionParams,
    SolvedAnswerPayload,
)

# Public API exports
__all__ = [
    "IncapsulaGeeTestResolver",
    "ChallengeInterceptor",
    "extract_submission_params",
    "parse_submission_params",
    "ChallengeInitPayload",
    "ResolutionState",
    "SessionSubmissionParams",
    "SolvedAnswerPayload",
]
