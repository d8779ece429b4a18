"""Captcha solver implementations.

This module contains the 2Captcha implementation of IGeeTestSolver. 2Captcha
exposes a request/poll API: a task is created through in.php and its status
is read through res.php until the worker is done with it.
"""

import asyncio
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Optional

import aiohttp

from ..config.logger import logger
from ..exceptions import SolveFailed
from .interfaces import IGeeTestSolver

if TYPE_CHECKING:
    from ..connectors.incapsula.interfaces import ChallengeInitPayload

NOT_READY = "CAPCHA_NOT_READY"

SleepFunc = Callable[[float], Awaitable[None]]


class TwoCaptchaGeeTestSolver(IGeeTestSolver):
    """GeeTest solver using the 2Captcha service.

    2Captcha relies on human workers for GeeTest, so a solve typically
    takes tens of seconds. The solver polls at a fixed interval and gives up
    after a fixed number of attempts.
    """

    def __init__(
        self,
        base_url: str = "http://2captcha.com",
        poll_interval: float = 5.0,
        max_attempts: int = 35,
        sleep: SleepFunc = asyncio.sleep,
        session: Optional[aiohttp.ClientSession] = None
    ):
        """Initialize the 2Captcha solver.

        Args:
            base_url: Service root; in.php and res.php are resolved against it.
            poll_interval: Seconds to wait before each status poll.
            max_attempts: Maximum number of status polls.
            sleep: Awaitable used for the poll delay. Tests pass a fake.
            session: Optional shared aiohttp session. When omitted a session
                is opened for each solve and closed afterwards.
        """
        self.base_url = base_url.rstrip("/")
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self._sleep = sleep
        self._session = session
        self.logger = logger.bind(solver="2Captcha")

    async def solve(
        self,
        init_payload: "ChallengeInitPayload",
        credential: str,
        page_url: str
    ) -> Optional[Any]:
        if self._session is not None:
            return await self._solve(self._session, init_payload, credential, page_url)

        async with aiohttp.ClientSession() as session:
            return await self._solve(session, init_payload, credential, page_url)

    async def _solve(
        self,
        session: aiohttp.ClientSession,
        init_payload: "ChallengeInitPayload",
        credential: str,
        page_url: str
    ) -> Optional[Any]:
        task_id = await self.submit_task(session, init_payload, credential, page_url)
        return await self.poll_result(session, task_id, credential)

    async def submit_task(
        self,
        session: aiohttp.ClientSession,
        init_payload: "ChallengeInitPayload",
        credential: str,
        page_url: str
    ) -> str:
        """Create a GeeTest task and return its id."""
        params = {
            "key": credential,
            "method": "geetest",
            "gt": init_payload.gt,
            "challenge": init_payload.challenge,
            "pageurl": page_url,
            "json": 1,
        }

        data = await self._get_json(session, "in.php", params)
        if data.get("status") != 1 or not data.get("request"):
            self.logger.error("solver_task_rejected", response=data.get("request"))
            raise SolveFailed(
                f"solving service rejected the task: {data.get('request')!r}"
            )

        task_id = str(data["request"])
        self.logger.info("solver_task_created", task_id=task_id, gt=init_payload.gt)
        return task_id

    async def poll_result(
        self,
        session: aiohttp.ClientSession,
        task_id: str,
        credential: str
    ) -> Optional[Any]:
        """Poll res.php until the task leaves the not-ready state.

        Polling stops on status 1 or on any answer other than the not-ready
        sentinel, error codes included. The last answer is returned unjudged.
        """
        params = {
            "key": credential,
            "action": "get",
            "id": task_id,
            "json": 1,
        }

        data: Optional[Dict[str, Any]] = None
        attempt = 0

        while attempt < self.max_attempts:
            await self._sleep(self.poll_interval)
            attempt += 1

            data = await self._get_json(session, "res.php", params)
            self.logger.debug(
                "solver_poll",
                task_id=task_id,
                attempt=attempt,
                status=data.get("status")
            )

            if data.get("status") == 1 or data.get("request") != NOT_READY:
                self.logger.info(
                    "solver_task_finished",
                    task_id=task_id,
                    attempt=attempt,
                    status=data.get("status")
                )
                break
        else:
            self.logger.warning(
                "solver_poll_exhausted",
                task_id=task_id,
                attempts=attempt
            )

        return data.get("request") if data is not None else None

    async def _get_json(
        self,
        session: aiohttp.ClientSession,
        endpoint: str,
        params: Dict[str, Any]
    ) -> Dict[str, Any]:
        url = f"{self.base_url}/{endpoint}"
        try:
            async with session.get(url, params=params) as resp:
                # 2Captcha answers JSON with a text/html content type
                data = await resp.json(content_type=None)
        except (aiohttp.ClientError, ValueError) as e:
            self.logger.error("solver_request_error", endpoint=endpoint, error=str(e))
            raise SolveFailed(f"solving service request to {endpoint} failed: {e}") from e

        if not isinstance(data, dict):
            raise SolveFailed(f"unexpected answer from {endpoint}: {data!r}")

        return data
