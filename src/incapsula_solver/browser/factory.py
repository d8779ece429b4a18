"""
Browser engine factory

Builds the Playwright engine the challenge flow runs in. The protection
layer's resource frame is cross-origin, so site isolation and web security
are switched off to let the top document script it.
"""
import structlog

from ..config.settings import ResolverSettings
from .engines.playwright_engine import PlaywrightEngine
from .interfaces import BrowserConfig

logger = structlog.get_logger()

CHALLENGE_BROWSER_ARGS = [
    "--disable-web-security",
    "--disable-features=IsolateOrigins,site-per-process",
    "--window-size=1920,1080",
]


def build_browser_config(settings: ResolverSettings) -> BrowserConfig:
    """Browser configuration for a challenge-resolving session"""
    return BrowserConfig(
        headless=settings.headless,
        stealth=settings.stealth,
        extra_args=list(CHALLENGE_BROWSER_ARGS)
    )


async def create_playwright_engine(settings: ResolverSettings) -> PlaywrightEngine:
    """Create and initialize the Playwright engine"""
    config = build_browser_config(settings)
    engine = PlaywrightEngine()
    await engine.initialize(config)

    logger.info(
        "browser_engine_created",
        engine="playwright",
        headless=config.headless,
        stealth=config.stealth
    )
    return engine
