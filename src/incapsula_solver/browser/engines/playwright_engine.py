"""
Playwright implementation of browser interfaces
"""
from typing import Any, Dict, List, Optional
from playwright.async_api import (
    async_playwright,
    Browser,
    BrowserContext,
    Frame,
    Page,
    Request,
    Response,
    Route,
)
from playwright_stealth import Stealth
import structlog

from ..interfaces import (
    BrowserConfig,
    IBrowserContext,
    IBrowserEngine,
    IFrame,
    IInterceptedRequest,
    IPage,
    IResponse,
    RequestHandler,
    ResponseHandler,
)

logger = structlog.get_logger()


class PlaywrightRequest(IInterceptedRequest):
    """Playwright route wrapper"""

    def __init__(self, route: Route, request: Request):
        self._route = route
        self._request = request

    @property
    def url(self) -> str:
        return self._request.url

    async def abort(self) -> None:
        await self._route.abort()

    async def proceed(self) -> None:
        await self._route.continue_()


class PlaywrightResponse(IResponse):
    """Playwright response wrapper"""

    def __init__(self, response: Response):
        self._response = response

    @property
    def url(self) -> str:
        return self._response.url


class PlaywrightFrame(IFrame):
    """Playwright frame wrapper"""

    def __init__(self, frame: Frame):
        self._frame = frame

    @property
    def url(self) -> str:
        return self._frame.url

    async def inner_html(self, selector: str) -> Optional[str]:
        element = await self._frame.query_selector(selector)
        if element is None:
            return None
        return await element.inner_html()


class PlaywrightPage(IPage):
    """Playwright page wrapper"""

    def __init__(self, page: Page):
        self._page = page

    @property
    def url(self) -> str:
        return self._page.url

    async def goto(self, url: str, wait_until: str = "load") -> None:
        await self._page.goto(url, wait_until=wait_until)

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        return await self._page.evaluate(script, arg)

    async def has_element(self, selector: str) -> bool:
        return await self._page.query_selector(selector) is not None

    def frames(self) -> List[IFrame]:
        return [PlaywrightFrame(frame) for frame in self._page.frames]

    async def route_requests(self, handler: RequestHandler) -> None:
        async def _route(route: Route, request: Request) -> None:
            await handler(PlaywrightRequest(route, request))

        await self._page.route("**/*", _route)

    def on_response(self, handler: ResponseHandler) -> None:
        async def _on_response(response: Response) -> None:
            await handler(PlaywrightResponse(response))

        self._page.on("response", _on_response)

    async def close(self) -> None:
        await self._page.close()


class PlaywrightContext(IBrowserContext):
    """Playwright context wrapper

    When a Stealth instance is given, its evasions are applied to every new
    page before the page is handed out, so they are in place for the first
    navigation.
    """

    def __init__(self, context: BrowserContext, stealth: Optional[Stealth] = None):
        self._context = context
        self._stealth = stealth

    async def new_page(self) -> IPage:
        page = await self._context.new_page()
        if self._stealth is not None:
            await self._stealth.apply_stealth_async(page)
            logger.debug("playwright_stealth_applied")
        return PlaywrightPage(page)

    async def close(self) -> None:
        await self._context.close()


class PlaywrightEngine(IBrowserEngine):
    """
    Playwright browser engine implementation
    """

    def __init__(self):
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._config: Optional[BrowserConfig] = None

    async def initialize(self, config: BrowserConfig) -> None:
        """Initialize Playwright browser"""
        self._config = config
        self._playwright = await async_playwright().start()

        # Build launch arguments
        args = [
                   '--disable-blink-features=AutomationControlled',
                   '--no-sandbox',
                   '--disable-setuid-sandbox',
                   '--disable-dev-shm-usage',
               ] + config.extra_args

        self._browser = await self._playwright.chromium.launch(
            headless=config.headless,
            args=args,
            proxy={"server": config.proxy} if config.proxy else None
        )
        logger.info("playwright_engine_initialized", headless=config.headless)

    async def create_context(self, context_options: Dict[str, Any]) -> IBrowserContext:
        """Create browser context with options"""
        options = {
            "viewport": self._config.viewport,
            "user_agent": self._config.user_agent,
            **context_options  # Allow override
        }

        context = await self._browser.new_context(**options)
        return PlaywrightContext(context, Stealth() if self._config.stealth else None)

    async def cleanup(self) -> None:
        """Cleanup resources"""
        if self._browser:
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

        logger.info("playwright_engine_cleaned_up")

    @property
    def is_initialized(self) -> bool:
        return self._browser is not None
