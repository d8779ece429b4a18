"""Network interception for the GeeTest challenge.

The protection layer loads gt.js to render the slider. If that script runs
first, the challenge becomes ready in the page and can no longer be solved
remotely. The interceptor therefore aborts the first gt.js request and, while
the protection layer recovers, lifts the challenge description from the
first response of the GeeTest init endpoint.

Both handlers hold one-shot latches. They run on the page's event loop one
callback at a time, so a latch flipped before the first await cannot be
observed half-set by another callback.
"""

import asyncio
from typing import Any, Optional

from ...browser.interfaces import IInterceptedRequest, IPage, IResponse
from ...config.logger import logger
from ...exceptions import CapturePayloadMissing
from .interfaces import ChallengeInitPayload

REFETCH_SCRIPT = """
async (url) => {
    const response = await fetch(url);
    return await response.json();
}
"""


class ChallengeInterceptor:
    """Blocks the challenge script once and captures the init payload once.

    One instance serves exactly one page load and one resolution attempt.
    """

    def __init__(self, script_marker: str = "gt.js", payload_marker: str = "GEE"):
        """Initialize the interceptor.

        Args:
            script_marker: URL fragment identifying the challenge-rendering script.
            payload_marker: URL fragment identifying the challenge init endpoint.
        """
        self.script_marker = script_marker
        self.payload_marker = payload_marker

        self._page: Optional[IPage] = None
        self._script_blocked = False
        self._capture_started = False
        self._captured = asyncio.Event()
        self._payload: Optional[ChallengeInitPayload] = None
        self._capture_error: Optional[BaseException] = None

        self.logger = logger.bind(component="interceptor")

    @property
    def page(self) -> Optional[IPage]:
        return self._page

    @property
    def is_installed(self) -> bool:
        return self._page is not None

    @property
    def script_blocked(self) -> bool:
        return self._script_blocked

    @property
    def payload(self) -> Optional[ChallengeInitPayload]:
        return self._payload

    async def install(self, page: IPage) -> None:
        """Register both handlers on the page.

        Must complete before the navigation that triggers the challenge,
        otherwise gt.js may load before it can be blocked.
        """
        if self._page is not None:
            raise RuntimeError("interceptor is already installed on a page")

        self._page = page
        await page.route_requests(self.handle_request)
        page.on_response(self.handle_response)
        self.logger.info("interceptor_installed")

    async def handle_request(self, request: IInterceptedRequest) -> None:
        """Abort the first challenge-script request, pass everything else."""
        if self.script_marker in request.url and not self._script_blocked:
            self._script_blocked = True
            self.logger.info("challenge_script_blocked", url=request.url)
            await request.abort()
            return

        await request.proceed()

    async def handle_response(self, response: IResponse) -> None:
        """Capture the init payload from the first matching response.

        The body is fetched again from inside the page, because the original
        response has already been consumed by the page. The re-fetch itself
        produces a matching response, which the latch turns away.
        """
        if self.payload_marker not in response.url or self._capture_started:
            return

        self._capture_started = True
        self.logger.info("init_response_seen", url=response.url)

        try:
            data: Any = await self._page.evaluate(REFETCH_SCRIPT, response.url)
            self._payload = ChallengeInitPayload.from_json(data)
        except Exception as e:
            self._capture_error = e
            self.logger.error("init_payload_capture_error", url=response.url, error=str(e))
        else:
            self.logger.info(
                "init_payload_captured",
                gt=self._payload.gt,
                challenge=self._payload.challenge
            )
        finally:
            self._captured.set()

    async def wait_for_payload(self, timeout: float) -> ChallengeInitPayload:
        """Return the captured payload, waiting at most timeout seconds.

        Raises:
            CapturePayloadMissing: If nothing was captured in time or the
                re-fetch failed.
        """
        try:
            await asyncio.wait_for(self._captured.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            raise CapturePayloadMissing(
                f"challenge payload not captured within {timeout}s"
            ) from None

        if self._payload is None:
            raise CapturePayloadMissing(
                f"challenge payload not captured: {self._capture_error}"
            ) from self._capture_error

        return self._payload
