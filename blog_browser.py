#!/usr/bin/env python3
"""
Playwright page navigation shared by the list and detail extractors.

One Chromium instance is launched on first use and reused for every page
of a run; close() (or leaving an ``async with`` block) tears it down.
"""

# Standard library imports
import asyncio
import logging
import random
from typing import TYPE_CHECKING, Any, List, Optional

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page, Playwright

# Third-party imports
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

# Local imports
from blog_errors import NavigationError
from blog_status import StatusCallback, emit

logger = logging.getLogger(__name__)

SCROLL_DISTANCE = 100  # px per tick
SCROLL_INTERVAL_MS = 100
SCROLL_BOTTOM_THRESHOLD = 50  # px between viewport bottom and page bottom
SCROLL_QUIET_CHECKS = 50  # consecutive at-bottom ticks before stopping
MAX_SCROLL_CHECKS = 600  # hard stop for feeds that never settle

# Scrolls one step and reports how far the viewport bottom is from the page bottom
SCROLL_STEP_SCRIPT = """(distance) => {
    const scrollHeight = document.body.scrollHeight;
    window.scrollBy(0, distance);
    return scrollHeight - (window.innerHeight + window.scrollY);
}"""


class PageNavigator:
    """Lazily started, reusable Playwright browser with fail-soft element queries"""

    def __init__(
        self,
        headless: bool = True,
        timeout_ms: int = 60000,
        callback: Optional[StatusCallback] = None
    ):
        self.headless = headless
        self.timeout_ms = timeout_ms
        self.callback = callback
        self._playwright: Optional['Playwright'] = None
        self._browser: Optional['Browser'] = None
        self._context: Optional['BrowserContext'] = None

        # User agents for variety
        self.user_agents = [
            'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
            'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
        ]

    def _log(self, level: str, message: str) -> None:
        emit(logger, self.callback, level, message)

    async def __aenter__(self) -> 'PageNavigator':
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _get_or_create_browser(self) -> 'Browser':
        """Lazily initialize the shared browser instance"""
        if self._browser is None:
            self._log("debug", "Launching browser...")
            try:
                self._playwright = await async_playwright().start()
                self._browser = await self._playwright.chromium.launch(
                    headless=self.headless,
                    args=['--no-sandbox', '--disable-setuid-sandbox']
                )
            except PlaywrightError as e:
                await self.close()
                raise NavigationError(f"Could not start browser: {e}") from e
        return self._browser

    async def _get_or_create_context(self) -> 'BrowserContext':
        """Get or create browser context with random user agent"""
        if self._context is None:
            browser = await self._get_or_create_browser()
            self._context = await browser.new_context(
                user_agent=random.choice(self.user_agents),
                viewport={'width': 1920, 'height': 1080}
            )
        return self._context

    async def close(self) -> None:
        """Close shared browser instance; safe to call more than once"""
        try:
            if self._context:
                await self._context.close()
            if self._browser:
                await self._browser.close()
                self._log("debug", "Browser closed")
            if self._playwright:
                await self._playwright.stop()
        except PlaywrightError as e:
            self._log("debug", f"Browser cleanup error: {e}")
        finally:
            self._context = None
            self._browser = None
            self._playwright = None

    async def open(self, url: str, wait_until: str = 'networkidle', timeout_ms: Optional[int] = None) -> 'Page':
        """Open url in a new page and wait for the given load state

        Raises:
            NavigationError: timeout, navigation failure or browser failure
        """
        context = await self._get_or_create_context()
        page = await context.new_page()
        self._log("debug", f"Navigating to {url}...")
        try:
            await page.goto(url, wait_until=wait_until, timeout=timeout_ms or self.timeout_ms)
        except PlaywrightTimeoutError as e:
            await self.close_page(page)
            raise NavigationError(f"Timed out loading {url}") from e
        except PlaywrightError as e:
            await self.close_page(page)
            raise NavigationError(f"Could not load {url}: {e}") from e
        return page

    async def close_page(self, page: Any) -> None:
        try:
            await page.close()
        except PlaywrightError as e:
            self._log("debug", f"Page close error: {e}")

    async def auto_scroll(
        self,
        page: Any,
        distance: int = SCROLL_DISTANCE,
        interval_ms: int = SCROLL_INTERVAL_MS,
        quiet_checks: int = SCROLL_QUIET_CHECKS,
        max_checks: int = MAX_SCROLL_CHECKS
    ) -> int:
        """Scroll until the page stops growing so lazy content renders

        Stops once the page bottom has been within SCROLL_BOTTOM_THRESHOLD px
        for quiet_checks consecutive ticks, or after max_checks ticks.

        Returns:
            Number of scroll ticks performed
        """
        at_bottom = 0
        ticks = 0
        while ticks < max_checks:
            gap = await page.evaluate(SCROLL_STEP_SCRIPT, distance)
            ticks += 1
            if gap <= SCROLL_BOTTOM_THRESHOLD:
                at_bottom += 1
                if at_bottom >= quiet_checks:
                    break
            else:
                at_bottom = 0
            await asyncio.sleep(interval_ms / 1000)

        if ticks >= max_checks and at_bottom < quiet_checks:
            self._log("debug", f"  Auto-scroll stopped after {ticks} checks without settling")
        return ticks

    async def query_text(self, page: Any, selector: str) -> Optional[str]:
        """Rendered text of the first match, None if nothing matches"""
        element = await page.query_selector(selector)
        if element is None:
            return None
        return await element.inner_text()

    async def query_property(self, page: Any, selector: str, expression: str) -> Optional[Any]:
        """Evaluate a JS function against the first match, None if nothing matches"""
        element = await page.query_selector(selector)
        if element is None:
            return None
        return await element.evaluate(expression)

    async def query_html(self, page: Any, selector: str) -> Optional[str]:
        """Snapshot of the first match's inner markup, None if nothing matches"""
        element = await page.query_selector(selector)
        if element is None:
            return None
        return await element.inner_html()

    async def query_all(self, page: Any, selector: str, expression: str) -> List[Any]:
        """Evaluate a JS function against every match (empty list if none)"""
        return await page.eval_on_selector_all(selector, f"els => els.map({expression})")
