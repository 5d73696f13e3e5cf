"""Playwright page source for the newest listing."""

from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from newestcheck.clients.http import USER_AGENT
from newestcheck.clients.listing import (
    AGE_SELECTOR,
    MORE_SELECTOR,
    SCORE_SELECTOR,
    TITLE_SELECTOR,
    PaginationTracker,
    build_page,
)
from newestcheck.config import DEFAULT_LISTING_URL
from newestcheck.errors import NavigationFailure
from newestcheck.models import ListingPage
from newestcheck.utils.logging import get_logger

logger = get_logger(__name__)

_ATTRIBUTE_SCRIPT = "(els, name) => els.map(e => e.getAttribute(name))"
_TEXT_SCRIPT = "els => els.map(e => e.textContent)"


class BrowserPageSource:
    """Drives a chromium page through the listing by clicking its pagination control."""

    def __init__(
        self,
        listing_url: str = DEFAULT_LISTING_URL,
        headless: bool = True,
        timeout_ms: int = 30_000,
    ) -> None:
        self._tracker = PaginationTracker(listing_url)
        self._headless = headless
        self._timeout_ms = timeout_ms
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._page: Page | None = None

    async def start(self) -> None:
        """Launch the browser and open a page."""
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=self._headless)
        context = await self._browser.new_context(user_agent=USER_AGENT)
        self._page = await context.new_page()
        self._page.set_default_timeout(self._timeout_ms)
        logger.info("Browser launched", headless=self._headless)

    async def close(self) -> None:
        """Close the browser and stop Playwright.

        Playwright is stopped even when closing the browser fails, which is
        common after the browser crashed or was already closed.
        """
        self._page = None
        browser, self._browser = self._browser, None
        playwright, self._playwright = self._playwright, None
        try:
            if browser is not None:
                try:
                    await browser.close()
                except PlaywrightError as e:
                    logger.warning("Error closing browser", error=str(e))
        finally:
            if playwright is not None:
                await playwright.stop()
                logger.info("Browser closed")

    async def __aenter__(self) -> "BrowserPageSource":
        try:
            await self.start()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def fetch_page(self, offset: int) -> ListingPage:
        """Load the listing page that starts at ``offset``.

        Offset 0 navigates to the listing URL; later offsets click the
        pagination control of the page currently shown.

        Raises:
            NavigationFailure: If the page cannot be reached.
            StructuralMismatch: If a marker on the page is malformed.
        """
        if self._page is None:
            raise RuntimeError("BrowserPageSource used before start()")
        page = self._page
        url = self._tracker.url_for(offset)

        try:
            if offset == 0:
                logger.debug("Opening listing", url=url)
                response = await page.goto(url, wait_until="domcontentloaded")
                if response is not None and not response.ok:
                    raise NavigationFailure(
                        f"HTTP {response.status}", url=url, page_content=await page.content()
                    )
            else:
                logger.debug("Clicking pagination control", url=url, offset=offset)
                async with page.expect_navigation(wait_until="domcontentloaded"):
                    await page.locator(MORE_SELECTOR).click()
            listing = await self._extract(page, offset)
        except PlaywrightError as e:
            logger.warning("Browser error loading listing", url=url, error=str(e))
            raise NavigationFailure(
                f"browser error: {e}", url=url, page_content=await self._current_content(page)
            ) from e

        self._tracker.record(listing)
        return listing

    async def _current_content(self, page: Page) -> str | None:
        """Content of the page currently shown, or None if the browser cannot provide it."""
        try:
            return await page.content()
        except PlaywrightError as e:
            logger.warning("Could not read page content", error=str(e))
            return None

    async def _extract(self, page: Page, offset: int) -> ListingPage:
        """Read all markers from the page currently shown."""
        ages = await page.locator(AGE_SELECTOR).evaluate_all(_ATTRIBUTE_SCRIPT, "title")
        score_ids = await page.locator(SCORE_SELECTOR).evaluate_all(_ATTRIBUTE_SCRIPT, "id")
        titles = await page.locator(TITLE_SELECTOR).evaluate_all(_TEXT_SCRIPT)
        more_hrefs = await page.locator(MORE_SELECTOR).evaluate_all(_ATTRIBUTE_SCRIPT, "href")
        content = await page.content()
        return build_page(
            offset=offset,
            url=page.url,
            ages=ages,
            score_ids=score_ids,
            titles=titles,
            more_hrefs=more_hrefs,
            content=content,
        )
