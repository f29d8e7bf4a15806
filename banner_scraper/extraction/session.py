"""
Page session controller.

Owns one browser, one context and one page for a single request. Nothing is
shared or pooled between requests, so two scrapes never see each other's
cookies, storage or injected scripts.

    async with PageSession(config) as session:
        handle = await session.open(url)
        ...

Readiness after navigation is best effort: the body wait, the lazy-load
scroll and the image settle wait all log and continue on timeout. Only
navigation itself can fail the session (``PageLoadFailure``).
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

from playwright.async_api import (
    async_playwright, Browser, BrowserContext, Page, Playwright,
    Error as PlaywrightError, TimeoutError as PlaywrightTimeout,
)

from banner_scraper.errors import PageLoadFailure
from banner_scraper.logger import get_logger
from banner_scraper.models import RetryPolicy, normalize_domain
from banner_scraper.extraction.stealth import (
    STEALTH_JS, get_context_options, get_launch_args, pick_user_agent,
)

log = get_logger('session')


SCROLL_JS = """
async ({distance, interval, maxSteps}) => {
    return await new Promise((resolve) => {
        let totalHeight = 0;
        let steps = 0;
        const timer = setInterval(() => {
            const scrollHeight = document.body ? document.body.scrollHeight : 0;
            window.scrollBy(0, distance);
            totalHeight += distance;
            steps += 1;
            if (totalHeight >= scrollHeight || steps >= maxSteps) {
                clearInterval(timer);
                resolve(steps);
            }
        }, interval);
    });
}
"""

IMAGES_SETTLED_JS = """
() => Array.from(document.querySelectorAll('img'))
    .every(img => img.complete && img.naturalHeight > 0)
"""


@dataclass
class PageHandle:
    """An open, ready page and the request it belongs to."""
    url: str
    domain: str
    page: Page


class PageSession:
    """
    One isolated browser tab.

    Args:
        settings: Config-like object (see ``banner_scraper.config.Config``)
        retry_policy: Navigation retry policy (default: from settings)
        headless: Override ``settings.HEADLESS``
    """

    def __init__(self, settings, retry_policy: Optional[RetryPolicy] = None,
                 headless: Optional[bool] = None):
        self.settings = settings
        self.retry_policy = retry_policy or settings.retry_policy()
        self.headless = settings.HEADLESS if headless is None else headless

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._handle: Optional[PageHandle] = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @property
    def handle(self) -> Optional[PageHandle]:
        return self._handle

    async def open(self, url: str) -> PageHandle:
        """
        Launch the browser, navigate and wait for the page to be usable.

        Raises:
            PageLoadFailure: every navigation attempt failed
        """
        width, height = self.settings.VIEWPORT_WIDTH, self.settings.VIEWPORT_HEIGHT

        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.headless,
            args=get_launch_args(width, height),
        )
        self._context = await self._browser.new_context(
            **get_context_options(width, height, pick_user_agent())
        )
        await self._context.add_init_script(STEALTH_JS)
        page = await self._context.new_page()

        await navigate(page, url, self.retry_policy)
        await wait_for_body(page, self.settings.BODY_WAIT_MS)
        await scroll_to_bottom(
            page,
            step=self.settings.SCROLL_STEP_PX,
            interval=self.settings.SCROLL_INTERVAL_MS,
            max_steps=self.settings.SCROLL_MAX_STEPS,
        )

        self._handle = PageHandle(url=url, domain=normalize_domain(url), page=page)
        log.info(f"Page ready: {url}")
        return self._handle

    async def wait_for_images(self) -> bool:
        """Wait for every <img> on the open page to finish loading."""
        if not self._handle:
            return False
        return await wait_for_images(self._handle.page, self.settings.IMAGE_SETTLE_MS)

    async def close(self):
        """Tear down page, context, browser and driver. Safe to call twice."""
        for name, closer in (
            ('context', self._context and self._context.close),
            ('browser', self._browser and self._browser.close),
            ('playwright', self._playwright and self._playwright.stop),
        ):
            if not closer:
                continue
            try:
                await closer()
            except Exception as e:
                log.warning(f"Error closing {name}: {e}")

        self._context = None
        self._browser = None
        self._playwright = None
        self._handle = None


async def navigate(page: Page, url: str, policy: RetryPolicy):
    """
    Navigate with retries, relaxing the load condition on each attempt.

    Raises:
        PageLoadFailure: all ``policy.max_attempts`` attempts failed
    """
    last_error = ""
    for attempt in range(policy.max_attempts):
        wait_until = policy.wait_until_for(attempt)
        try:
            await page.goto(url, wait_until=wait_until, timeout=policy.per_attempt_timeout_ms)
            log.info(f"Loaded {url} (attempt {attempt + 1}/{policy.max_attempts}, {wait_until})")
            return
        except PlaywrightError as e:
            last_error = str(e)
            log.warning(f"Error loading page (attempt {attempt + 1}/{policy.max_attempts}): {e}")

        if attempt + 1 < policy.max_attempts:
            await asyncio.sleep(policy.delay_after(attempt))

    raise PageLoadFailure(url, policy.max_attempts, last_error)


async def wait_for_body(page: Page, timeout: int) -> bool:
    """Wait for <body>. Timeout is logged, not raised."""
    try:
        await page.wait_for_selector('body', state='attached', timeout=timeout)
        return True
    except PlaywrightTimeout:
        log.warning("Body not found, continuing anyway")
        return False


async def scroll_to_bottom(page: Page, step: int = 500, interval: int = 300,
                           max_steps: int = 200) -> int:
    """
    Scroll down in fixed steps to trigger lazy-loaded content.

    Stops once the scrolled distance reaches the body height seen at that
    tick, so infinite-scroll pages are not paginated further.

    Returns:
        Number of steps taken (0 if scrolling failed)
    """
    try:
        steps = await page.evaluate(
            SCROLL_JS, {"distance": step, "interval": interval, "maxSteps": max_steps}
        )
        log.debug(f"Scrolling completed in {steps} steps")
        return steps or 0
    except PlaywrightError as e:
        log.warning(f"Scroll failed, continuing anyway: {e}")
        return 0


async def wait_for_images(page: Page, timeout: int) -> bool:
    """Wait until all images report complete with a natural height."""
    try:
        await page.wait_for_function(IMAGES_SETTLED_JS, timeout=timeout)
        log.info("Images are fully loaded")
        return True
    except PlaywrightTimeout:
        log.warning(f"Images still loading after {timeout}ms, continuing anyway")
        return False
