"""Headless rendering provider for the content extractor.

The extractor only needs four capabilities from a browser: navigate to a
URL, return the rendered DOM, block resource types, and tear everything
down afterwards. This module expresses them as a small protocol with a
Playwright implementation.

Resource blocking is declarative: a ResourcePolicy lists the blocked
resource types and the renderer evaluates it for every request.

Isolation:
    Each ``open()`` launches a fresh browser process with its own context
    and closes it when the ``async with`` block exits, whatever the outcome.
    Browsers are never shared between URLs.
"""

import logging
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Protocol

from playwright.async_api import Page, Playwright, Route, async_playwright

from tools.utils import USER_AGENT

logger = logging.getLogger(__name__)

# Playwright resource types that never carry article text
BLOCKED_RESOURCE_TYPES = frozenset({"image", "stylesheet", "font", "media"})


@dataclass(frozen=True)
class ResourcePolicy:
    """Allow/deny policy for subresource requests.

    Attributes:
        blocked_types: Playwright resource types to abort
    """

    blocked_types: frozenset[str] = field(default=BLOCKED_RESOURCE_TYPES)

    def allows(self, resource_type: str) -> bool:
        return resource_type not in self.blocked_types


class RenderSession(Protocol):
    """A single page in an isolated browser."""

    async def goto(self, url: str, timeout: float) -> None:
        """Navigate to ``url``, raising on failure or after ``timeout`` seconds."""
        ...

    async def content(self) -> str:
        """Return the rendered HTML of the current page."""
        ...


class Renderer(Protocol):
    """Factory of isolated render sessions."""

    def open(self, policy: ResourcePolicy) -> AbstractAsyncContextManager[RenderSession]:
        ...


class _PlaywrightSession:
    """RenderSession backed by a Playwright page."""

    def __init__(self, page: Page):
        self._page = page

    async def goto(self, url: str, timeout: float) -> None:
        await self._page.goto(url, wait_until="domcontentloaded", timeout=timeout * 1000)

    async def content(self) -> str:
        return await self._page.content()


class PlaywrightRenderer:
    """Chromium renderer with one browser launch per session.

    The Playwright driver is started once per pipeline run; browsers are
    launched per ``open()`` call.

    Example:
        >>> async with PlaywrightRenderer() as renderer:
        ...     async with renderer.open(ResourcePolicy()) as session:
        ...         await session.goto("https://example.com/news/1", timeout=30)
        ...         html = await session.content()
    """

    def __init__(
        self,
        headless: bool = True,
        user_agent: str = USER_AGENT,
        launch_timeout: float = 60.0,
    ):
        self.headless = headless
        self.user_agent = user_agent
        self.launch_timeout = launch_timeout
        self._playwright: Playwright | None = None

    async def start(self) -> None:
        if self._playwright is None:
            self._playwright = await async_playwright().start()
            logger.debug("Playwright driver started")

    async def stop(self) -> None:
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
            logger.debug("Playwright driver stopped")

    async def __aenter__(self) -> "PlaywrightRenderer":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    @asynccontextmanager
    async def open(self, policy: ResourcePolicy) -> AsyncIterator[RenderSession]:
        """Launch an isolated browser page that obeys ``policy``."""
        if self._playwright is None:
            raise RuntimeError("PlaywrightRenderer.start() must be called before open()")

        browser = await self._playwright.chromium.launch(
            headless=self.headless,
            args=["--disable-dev-shm-usage"],
            timeout=self.launch_timeout * 1000,
        )
        try:
            context = await browser.new_context(user_agent=self.user_agent)
            page = await context.new_page()

            async def apply_policy(route: Route) -> None:
                if policy.allows(route.request.resource_type):
                    await route.continue_()
                else:
                    await route.abort()

            await page.route("**/*", apply_policy)
            yield _PlaywrightSession(page)
        finally:
            try:
                await browser.close()
            except Exception as e:
                logger.warning("Browser close failed: %s (%s)", e, type(e).__name__)
