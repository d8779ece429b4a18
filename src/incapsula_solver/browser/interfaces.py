"""
Browser engine interfaces using ABC
Design Pattern: Strategy + Dependency Inversion Principle

The resolver only talks to these interfaces, so the challenge flow can be
exercised in tests with plain fakes instead of a live browser.
"""
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional
from dataclasses import dataclass


@dataclass
class BrowserConfig:
    """Browser configuration"""
    headless: bool = True
    proxy: Optional[str] = None
    user_agent: Optional[str] = None
    viewport: Dict[str, int] = None
    extra_args: list[str] = None
    stealth: bool = False

    def __post_init__(self):
        if self.viewport is None:
            self.viewport = {"width": 1920, "height": 1080}
        if self.extra_args is None:
            self.extra_args = []


class IInterceptedRequest(ABC):
    """An outbound request paused by the page's request router"""

    @property
    @abstractmethod
    def url(self) -> str:
        pass

    @abstractmethod
    async def abort(self) -> None:
        """Fail the request before it leaves the browser"""
        pass

    @abstractmethod
    async def proceed(self) -> None:
        """Let the request through unmodified"""
        pass


class IResponse(ABC):
    """An inbound response observed by the page"""

    @property
    @abstractmethod
    def url(self) -> str:
        pass


RequestHandler = Callable[[IInterceptedRequest], Awaitable[None]]
ResponseHandler = Callable[[IResponse], Awaitable[None]]


class IFrame(ABC):
    """Interface for a frame inside a page"""

    @property
    @abstractmethod
    def url(self) -> str:
        pass

    @abstractmethod
    async def inner_html(self, selector: str) -> Optional[str]:
        """Return innerHTML of the first match, or None if nothing matches"""
        pass


class IPage(ABC):
    """Interface for a browser page"""

    @property
    @abstractmethod
    def url(self) -> str:
        pass

    @abstractmethod
    async def goto(self, url: str, wait_until: str = "load") -> None:
        """Navigate to URL"""
        pass

    @abstractmethod
    async def evaluate(self, script: str, arg: Any = None) -> Any:
        """Execute JavaScript in the page context"""
        pass

    @abstractmethod
    async def has_element(self, selector: str) -> bool:
        """Check whether the main frame currently contains a match"""
        pass

    @abstractmethod
    def frames(self) -> List[IFrame]:
        """All frames attached to the page, main frame first"""
        pass

    @abstractmethod
    async def route_requests(self, handler: RequestHandler) -> None:
        """Route every outbound request through handler.

        The handler must call abort() or proceed() exactly once per request.
        """
        pass

    @abstractmethod
    def on_response(self, handler: ResponseHandler) -> None:
        """Register a coroutine called for every inbound response"""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the page"""
        pass


class IBrowserContext(ABC):
    """Interface for browser context"""

    @abstractmethod
    async def new_page(self) -> IPage:
        """Create a new page/tab"""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the context"""
        pass


class IBrowserEngine(ABC):
    """
    Abstract interface for browser engines
    Following Dependency Inversion Principle (SOLID)
    """

    @abstractmethod
    async def initialize(self, config: BrowserConfig) -> None:
        """Initialize the browser engine"""
        pass

    @abstractmethod
    async def create_context(self, context_options: Dict[str, Any]) -> IBrowserContext:
        """Create an isolated browser context"""
        pass

    @abstractmethod
    async def cleanup(self) -> None:
        """Cleanup all resources"""
        pass

    @property
    @abstractmethod
    def is_initialized(self) -> bool:
        """Check if engine is initialized"""
        pass
