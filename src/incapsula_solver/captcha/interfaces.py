"""Interfaces for the captcha system.

This module defines the contract that GeeTest solver implementations must
follow. The resolver depends only on this interface, which keeps the
solving service swappable and lets tests substitute a scripted solver.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from ..connectors.incapsula.interfaces import ChallengeInitPayload


class IGeeTestSolver(ABC):
    """Interface for GeeTest solvers."""

    @abstractmethod
    async def solve(
        self,
        init_payload: "ChallengeInitPayload",
        credential: str,
        page_url: str
    ) -> Optional[Any]:
        """Hand a GeeTest challenge to a solving service and wait for it.

        Implementations do not judge the answer: whatever the service last
        reported is returned as-is and the caller validates it.

        Args:
            init_payload: The captured challenge description (gt + challenge).
            credential: API key for the solving service. Must not be logged.
            page_url: URL of the page that shows the challenge.

        Returns:
            The last result reported by the service (normally a mapping with
            geetest_challenge, geetest_validate and geetest_seccode), or None
            if no status was ever obtained.

        Raises:
            SolveFailed: If the service rejects the task or cannot be reached.
        """
        pass
