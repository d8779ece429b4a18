"""Tests for the Incapsula GeeTest resolver."""

import re
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs

import pytest

from incapsula_solver.captcha.interfaces import IGeeTestSolver
from incapsula_solver.connectors.incapsula.interceptor import REFETCH_SCRIPT
from incapsula_solver.connectors.incapsula.interfaces import (
    ChallengeInitPayload,
    ResolutionState,
)
from incapsula_solver.connectors.incapsula.resolver import (
    RESUBMIT_SCRIPT,
    IncapsulaGeeTestResolver,
)
from incapsula_solver.credentials.providers import ISecretProvider
from incapsula_solver.exceptions import (
    CapturePayloadMissing,
    CredentialUnavailable,
    MarkupExtractionFailed,
    ResubmissionIOError,
    SolveFailed,
)
from tests.fixtures.browser_fixtures import FakeFrame, FakePage
from tests.fixtures.mock_responses import (
    GT_SCRIPT_URL,
    INIT_PAYLOAD,
    INIT_PAYLOAD_URL,
    PAGE_URL,
    SOLVED_ANSWER,
)


class ScriptedSolver(IGeeTestSolver):
    """Solver returning a fixed result and recording its calls."""

    def __init__(self, result: Any = None):
        self.result = result
        self.calls: List[tuple] = []

    async def solve(self, init_payload, credential, page_url):
        self.calls.append((init_payload, credential, page_url))
        return self.result


class StaticSecretProvider(ISecretProvider):

    def __init__(self, secret: Optional[Dict[str, str]] = None):
        self.secret = secret if secret is not None else {"captchaToken": "test_api_key"}
        self.requested: List[str] = []

    async def get(self, secret_id: str) -> Dict[str, str]:
        self.requested.append(secret_id)
        return self.secret


def page_evaluate(script, arg):
    if script == REFETCH_SCRIPT:
        return dict(INIT_PAYLOAD)
    return None


@pytest.fixture
def page(challenge_page):
    challenge_page.evaluate_handler = page_evaluate
    return challenge_page


@pytest.fixture
def solver():
    return ScriptedSolver(dict(SOLVED_ANSWER))


@pytest.fixture
def secrets():
    return StaticSecretProvider()


@pytest.fixture
def resolver(solver, secrets, fast_settings, fake_sleep):
    return IncapsulaGeeTestResolver(solver, secrets, fast_settings, sleep=fake_sleep)


async def load_challenge(page: FakePage) -> None:
    """Simulate the network traffic of a page load served with the challenge."""
    await page.emit_request(PAGE_URL)
    await page.emit_request(GT_SCRIPT_URL)
    await page.emit_response(INIT_PAYLOAD_URL)


def resubmissions(page: FakePage) -> List[tuple]:
    return [call for call in page.evaluate_calls if call[0] == RESUBMIT_SCRIPT]


def ready_state_handler(script: str) -> str:
    """Body of the XHR's onreadystatechange arrow function."""
    start = script.index("{", script.index("onreadystatechange"))
    depth = 0
    for end in range(start, len(script)):
        if script[end] == "{":
            depth += 1
        elif script[end] == "}":
            depth -= 1
            if depth == 0:
                return script[start + 1:end]
    raise AssertionError("unbalanced onreadystatechange handler")


class TestResolveSuccess:

    @pytest.mark.asyncio
    async def test_full_resolution(self, resolver, page, solver, secrets, fake_sleep):
        await resolver.prepare(page)
        await load_challenge(page)

        await resolver.resolve(page, PAGE_URL)

        assert resolver.state is ResolutionState.RELOADED
        assert fake_sleep.calls == [120.0, 1.5]
        assert secrets.requested == ["proxyApiCredentials"]
        assert solver.calls == [
            (ChallengeInitPayload.from_json(INIT_PAYLOAD), "test_api_key", PAGE_URL)
        ]
        assert page.navigations == [PAGE_URL]

    @pytest.mark.asyncio
    async def test_resubmission_request(self, resolver, page):
        await resolver.prepare(page)
        await load_challenge(page)

        await resolver.resolve(page, PAGE_URL)

        [(_, arg)] = resubmissions(page)
        assert arg["path"] == (
            "/_Incapsula_Resource?SWCGHOEL=gee&dai=17&cts=Rk9PQkFSLWN0cy10b2tlbg=="
        )
        decoded = {k: v[0] for k, v in parse_qs(arg["body"]).items()}
        assert decoded == SOLVED_ANSWER
        assert arg["body"].endswith("&geetest_seccode=" + SOLVED_ANSWER["geetest_seccode"])

    def test_reload_happens_regardless_of_status(self):
        # The protection layer's own script reloads on any completed XHR and
        # re-evaluates the challenge then; success and failure are not told apart.
        handler = " ".join(ready_state_handler(RESUBMIT_SCRIPT).split())

        assert handler == "if (xhr.readyState == 4) { window.parent.location.reload(); }"
        assert re.search(r"\bstatus\b", RESUBMIT_SCRIPT) is None
        assert "application/x-www-form-urlencoded" in RESUBMIT_SCRIPT

    @pytest.mark.asyncio
    async def test_navigate_resolves_when_challenge_present(self, resolver, page):
        async def goto(url, wait_until="load"):
            page.navigations.append(url)
            await load_challenge(page)

        page.goto = goto

        resolved = await resolver.navigate(page, PAGE_URL)

        assert resolved is True
        assert resolver.state is ResolutionState.RELOADED
        assert page.navigations == [PAGE_URL, PAGE_URL]

    @pytest.mark.asyncio
    async def test_navigate_without_challenge(self, resolver, fake_sleep, solver):
        page = FakePage(url=PAGE_URL)

        resolved = await resolver.navigate(page, PAGE_URL)

        assert resolved is False
        assert resolver.state is ResolutionState.INTERCEPTING
        assert page.request_handler is not None
        assert fake_sleep.calls == []
        assert solver.calls == []


class TestResolveFailures:

    @pytest.mark.asyncio
    async def test_markup_missing(self, resolver, solver):
        page = FakePage(url=PAGE_URL, frames=[FakeFrame(PAGE_URL)], evaluate_handler=page_evaluate)
        await resolver.prepare(page)
        await load_challenge(page)

        with pytest.raises(MarkupExtractionFailed) as exc_info:
            await resolver.resolve(page, PAGE_URL)

        assert resolver.state is ResolutionState.FAILED
        assert exc_info.value.state is ResolutionState.AWAITING_MARKUP
        assert solver.calls == []

    @pytest.mark.asyncio
    async def test_payload_never_captured(self, resolver, page, solver, secrets):
        await resolver.prepare(page)
        await page.emit_request(GT_SCRIPT_URL)

        with pytest.raises(CapturePayloadMissing):
            await resolver.resolve(page, PAGE_URL)

        assert resolver.state is ResolutionState.FAILED
        assert secrets.requested == []
        assert solver.calls == []

    @pytest.mark.asyncio
    async def test_solver_exhausted(self, resolver, page, solver):
        solver.result = "CAPCHA_NOT_READY"
        await resolver.prepare(page)
        await load_challenge(page)

        with pytest.raises(SolveFailed) as exc_info:
            await resolver.resolve(page, PAGE_URL)

        assert exc_info.value.state is ResolutionState.SOLVING
        assert resubmissions(page) == []
        assert page.navigations == []

    @pytest.mark.asyncio
    async def test_solver_missing_validation_fields(self, resolver, page, solver):
        solver.result = {"geetest_challenge": "c"}
        await resolver.prepare(page)
        await load_challenge(page)

        with pytest.raises(SolveFailed):
            await resolver.resolve(page, PAGE_URL)

        assert resolver.state is ResolutionState.FAILED
        assert resubmissions(page) == []

    @pytest.mark.asyncio
    async def test_credential_missing(self, solver, fast_settings, fake_sleep, page):
        resolver = IncapsulaGeeTestResolver(
            solver, StaticSecretProvider({"user": "x"}), fast_settings, sleep=fake_sleep
        )
        await resolver.prepare(page)
        await load_challenge(page)

        with pytest.raises(CredentialUnavailable):
            await resolver.resolve(page, PAGE_URL)

        assert resolver.state is ResolutionState.FAILED
        assert solver.calls == []

    @pytest.mark.asyncio
    async def test_resubmission_error(self, resolver, page):
        def evaluate(script, arg):
            if script == RESUBMIT_SCRIPT:
                raise RuntimeError("Target page, context or browser has been closed")
            return page_evaluate(script, arg)

        page.evaluate_handler = evaluate
        await resolver.prepare(page)
        await load_challenge(page)

        with pytest.raises(ResubmissionIOError) as exc_info:
            await resolver.resolve(page, PAGE_URL)

        assert exc_info.value.state is ResolutionState.RESUBMITTING
        assert resolver.state is ResolutionState.FAILED
        assert page.navigations == []

    @pytest.mark.asyncio
    async def test_navigation_error_after_resubmission(self, resolver, page):
        async def goto(url, wait_until="load"):
            raise RuntimeError("net::ERR_CONNECTION_RESET")

        await resolver.prepare(page)
        await load_challenge(page)
        page.goto = goto

        with pytest.raises(RuntimeError):
            await resolver.resolve(page, PAGE_URL)

        assert resolver.state is ResolutionState.FAILED


class TestResolverLifecycle:

    @pytest.mark.asyncio
    async def test_resolve_requires_prepare(self, resolver, page):
        with pytest.raises(RuntimeError):
            await resolver.resolve(page, PAGE_URL)

        assert resolver.state is ResolutionState.IDLE

    @pytest.mark.asyncio
    async def test_prepare_only_once(self, resolver, page):
        await resolver.prepare(page)

        with pytest.raises(RuntimeError):
            await resolver.prepare(page)

    @pytest.mark.asyncio
    async def test_payload_bound_to_prepared_page(self, resolver, page):
        await resolver.prepare(page)
        other = FakePage(url=PAGE_URL)

        with pytest.raises(RuntimeError):
            await resolver.resolve(other, PAGE_URL)

    @pytest.mark.asyncio
    async def test_no_second_attempt_after_failure(self, resolver, page):
        await resolver.prepare(page)

        with pytest.raises(CapturePayloadMissing):
            await resolver.resolve(page, PAGE_URL)
        with pytest.raises(RuntimeError):
            await resolver.resolve(page, PAGE_URL)
