"""Incapsula GeeTest resolver.

This module sequences one resolution attempt: interception before
navigation, a dwell for the protection layer's retry markup, extraction of
the submission parameters, remote solving, and replay of the answer from
inside the page followed by re-navigation.

Every failure is final for the attempt. The resolver moves to FAILED and
re-raises; the caller owns the page and must release it.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from ...browser.interfaces import IPage
from ...captcha.interfaces import IGeeTestSolver
from ...config.logger import logger
from ...config.settings import ResolverSettings
from ...credentials.providers import ISecretProvider
from ...exceptions import ChallengeResolutionError, ResubmissionIOError
from .extractor import extract_submission_params
from .interceptor import ChallengeInterceptor
from .interfaces import (
    ResolutionState,
    SessionSubmissionParams,
    SolvedAnswerPayload,
)

# Same request the protection layer's own script sends. The parent document
# is reloaded once the XHR completes, whatever its status: the layer decides
# on reload whether the challenge is satisfied.
RESUBMIT_SCRIPT = """
({ path, body }) => {
    let xhr;
    if (window.XMLHttpRequest) {
        xhr = new XMLHttpRequest();
    } else {
        xhr = new ActiveXObject("Microsoft.XMLHTTP");
    }
    xhr.open("POST", path, true);
    xhr.setRequestHeader("Content-Type", "application/x-www-form-urlencoded");
    xhr.onreadystatechange = () => {
        if (xhr.readyState == 4) {
            window.parent.location.reload();
        }
    };
    xhr.send(body);
}
"""

SleepFunc = Callable[[float], Awaitable[None]]


class IncapsulaGeeTestResolver:
    """Resolves one Incapsula GeeTest challenge on one page.

    Usage:
        resolver = IncapsulaGeeTestResolver(solver, secrets, settings)
        await resolver.prepare(page)       # before navigating
        await page.goto(url)
        await resolver.resolve(page, url)

    or simply ``await resolver.navigate(page, url)``.
    """

    def __init__(
        self,
        solver: IGeeTestSolver,
        secret_provider: ISecretProvider,
        settings: Optional[ResolverSettings] = None,
        sleep: SleepFunc = asyncio.sleep
    ):
        self.solver = solver
        self.secret_provider = secret_provider
        self.settings = settings or ResolverSettings()
        self._sleep = sleep

        self._state = ResolutionState.IDLE
        self._interceptor: Optional[ChallengeInterceptor] = None
        self.logger = logger.bind(component="incapsula_resolver")

    @property
    def state(self) -> ResolutionState:
        return self._state

    @property
    def interceptor(self) -> Optional[ChallengeInterceptor]:
        return self._interceptor

    def _transition_to(self, new_state: ResolutionState) -> None:
        old_state = self._state
        self._state = new_state
        self.logger.info(
            "resolution_state_change",
            old_state=old_state.value,
            new_state=new_state.value
        )

    def _fail(self, error: Exception) -> None:
        if isinstance(error, ChallengeResolutionError) and error.state is None:
            error.state = self._state
        self.logger.error(
            "resolution_failed",
            state=self._state.value,
            error_type=type(error).__name__,
            error=str(error)
        )
        self._transition_to(ResolutionState.FAILED)

    async def prepare(self, page: IPage) -> ChallengeInterceptor:
        """Install the interceptor on a fresh page (IDLE -> INTERCEPTING)."""
        if self._state is not ResolutionState.IDLE:
            raise RuntimeError(f"resolver already used (state={self._state.value})")

        self._interceptor = ChallengeInterceptor(
            script_marker=self.settings.challenge_script_marker,
            payload_marker=self.settings.init_payload_marker
        )
        await self._interceptor.install(page)
        self._transition_to(ResolutionState.INTERCEPTING)
        return self._interceptor

    async def challenge_present(self, page: IPage) -> bool:
        """Check whether the protection layer's iframe is on the page."""
        return await page.has_element(self.settings.challenge_frame_selector)

    async def navigate(self, page: IPage, url: str) -> bool:
        """Navigate to url and resolve the challenge if one is served.

        Returns:
            True if a challenge was found and resolved, False if the page
            loaded without one.
        """
        if self._state is ResolutionState.IDLE:
            await self.prepare(page)

        await page.goto(url)

        if not await self.challenge_present(page):
            self.logger.info("no_challenge_detected", url=url)
            return False

        await self.resolve(page, url)
        return True

    async def resolve(self, page: IPage, url: str) -> None:
        """Run the attempt from INTERCEPTING to RELOADED.

        Raises:
            ChallengeResolutionError: Any resolution failure, after moving to
                FAILED. Browser errors outside the resolution steps (such as a
                failing re-navigation) also move to FAILED and propagate as-is.
        """
        if self._state is not ResolutionState.INTERCEPTING:
            raise RuntimeError(
                f"resolve() needs an intercepted page (state={self._state.value})"
            )
        if self._interceptor.page is not page:
            raise RuntimeError("interceptor was installed on a different page")

        try:
            await self._resolve(page, url)
        except Exception as e:
            self._fail(e)
            raise

    async def _resolve(self, page: IPage, url: str) -> None:
        settings = self.settings

        self.logger.info("awaiting_retry_markup", seconds=settings.markup_dwell_seconds)
        await self._sleep(settings.markup_dwell_seconds)
        self._transition_to(ResolutionState.AWAITING_MARKUP)

        params = await extract_submission_params(
            page,
            frame_marker=settings.resource_frame_marker,
            selector=settings.error_content_selector
        )
        self._transition_to(ResolutionState.EXTRACTED)

        init_payload = await self._interceptor.wait_for_payload(
            settings.capture_timeout_seconds
        )
        credential = await self.secret_provider.get_credential(
            settings.secret_id, settings.credential_field
        )

        self._transition_to(ResolutionState.SOLVING)
        result = await self.solver.solve(init_payload, credential, url)
        answer = SolvedAnswerPayload.from_result(result)

        self._transition_to(ResolutionState.RESUBMITTING)
        await self._resubmit(page, params, answer)

        await self._sleep(settings.settle_seconds)
        await page.goto(url)
        self._transition_to(ResolutionState.RELOADED)

    async def _resubmit(
        self,
        page: IPage,
        params: SessionSubmissionParams,
        answer: SolvedAnswerPayload
    ) -> None:
        try:
            await page.evaluate(
                RESUBMIT_SCRIPT,
                {"path": params.resource_path, "body": answer.to_form_body()}
            )
        except Exception as e:
            raise ResubmissionIOError(f"in-page resubmission failed: {e}") from e

        self.logger.info("challenge_answer_submitted", path=params.resource_path)
