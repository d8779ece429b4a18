"""
Incapsula GeeTest resolver - driver entry point

Launches a browser, navigates to the target URL with the challenge
interceptor in place, and resolves the challenge if the protection layer
serves one. The browser is released whatever the outcome.
"""
import asyncio
import sys
from typing import Optional

from .browser.factory import create_playwright_engine
from .browser.interfaces import IPage
from .captcha.solvers import TwoCaptchaGeeTestSolver
from .config.logger import logger
from .config.settings import ResolverSettings
from .connectors.incapsula.resolver import IncapsulaGeeTestResolver
from .credentials.providers import create_secret_provider


def build_resolver(settings: ResolverSettings) -> IncapsulaGeeTestResolver:
    """Wire the resolver with its solver and secret provider"""
    solver = TwoCaptchaGeeTestSolver(
        base_url=settings.solver_base_url,
        poll_interval=settings.poll_interval_seconds,
        max_attempts=settings.max_poll_attempts
    )
    return IncapsulaGeeTestResolver(
        solver=solver,
        secret_provider=create_secret_provider(settings),
        settings=settings
    )


async def resolve_url(
        page: IPage,
        url: str,
        settings: ResolverSettings
) -> bool:
    """Navigate page to url, resolving the challenge if one is served"""
    resolver = build_resolver(settings)
    return await resolver.navigate(page, url)


async def main(url: Optional[str] = None) -> bool:
    """Main with dependency injection"""
    settings = ResolverSettings.from_env()
    url = url or settings.target_url
    if not url:
        raise ValueError("No target URL given (argument or TARGET_URL)")

    browser_engine = await create_playwright_engine(settings)
    context = None
    page = None

    try:
        context = await browser_engine.create_context({})
        page = await context.new_page()
        resolved = await resolve_url(page, url, settings)
        logger.info("navigation_finished", url=url, challenge_resolved=resolved)
        return resolved
    finally:
        # Closing the page drops its request route and response listener
        if page is not None:
            await page.close()
        if context is not None:
            await context.close()
        await browser_engine.cleanup()


def run():
    """Console entry point: incapsula-resolve [URL]"""
    url = sys.argv[1] if len(sys.argv) > 1 else None
    asyncio.run(main(url))


if __name__ == "__main__":
    run()
