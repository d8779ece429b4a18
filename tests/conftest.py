"""
Pytest configuration and shared fixtures for the test suite.
"""
import sys
from pathlib import Path
from typing import Any, Dict, List

import pytest
import pytest_asyncio
from aiohttp import web

# Add project root and src to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(project_root / "src"))

from incapsula_solver.config.settings import ResolverSettings  # noqa: E402

# Import fixtures from our fixtures module so they are available to every test
from tests.fixtures.browser_fixtures import (  # noqa: E402,F401
    browser_config,
    challenge_page,
    mock_browser_engine,
    resource_frame,
)


class SleepRecorder:
    """Stand-in for asyncio.sleep that only records the requested delays."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.calls)


@pytest.fixture
def fake_sleep():
    """Simulated clock for poll loops and dwell times."""
    return SleepRecorder()


@pytest.fixture
def fast_settings():
    """Resolver settings with the production delays but a short capture wait."""
    return ResolverSettings(capture_timeout_seconds=0.05)


class FakeSolverService:
    """Scriptable 2Captcha-style service.

    in_answer is returned by in.php; res_answers are served in order by
    res.php, the last one repeating once the script runs out.
    """

    def __init__(self):
        self.in_answer: Any = {"status": 1, "request": "1"}
        self.res_answers: List[Any] = []
        self.in_queries: List[Dict[str, str]] = []
        self.res_queries: List[Dict[str, str]] = []
        self.base_url = ""

    def _next_res(self) -> Any:
        index = min(len(self.res_queries) - 1, len(self.res_answers) - 1)
        return self.res_answers[index]

    async def handle_in(self, request: web.Request) -> web.Response:
        self.in_queries.append(dict(request.query))
        return _answer(self.in_answer)

    async def handle_res(self, request: web.Request) -> web.Response:
        self.res_queries.append(dict(request.query))
        return _answer(self._next_res())


def _answer(payload: Any) -> web.Response:
    if isinstance(payload, str):
        return web.Response(text=payload, content_type="text/html")
    # 2Captcha labels its JSON as text/html
    return web.json_response(payload, content_type="text/html")


@pytest_asyncio.fixture
async def solver_service():
    """Run a fake solving service on an ephemeral localhost port."""
    service = FakeSolverService()

    app = web.Application()
    app.router.add_get("/in.php", service.handle_in)
    app.router.add_get("/res.php", service.handle_res)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()

    port = runner.addresses[0][1]
    service.base_url = f"http://127.0.0.1:{port}"

    yield service

    await runner.cleanup()


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
