"""Plain HTTP page source for the newest listing."""

import httpx

from newestcheck.clients.listing import PaginationTracker, extract_listing
from newestcheck.config import DEFAULT_LISTING_URL
from newestcheck.errors import NavigationFailure
from newestcheck.models import ListingPage
from newestcheck.utils.logging import get_logger

logger = get_logger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)


class HttpPageSource:
    """Loads listing pages over HTTP and follows the pagination control's href."""

    def __init__(self, listing_url: str = DEFAULT_LISTING_URL, timeout: float = 30.0) -> None:
        self._tracker = PaginationTracker(listing_url)
        self._client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "HttpPageSource":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def fetch_page(self, offset: int) -> ListingPage:
        """Fetch the listing page that starts at ``offset``.

        Raises:
            NavigationFailure: If the page cannot be reached.
            StructuralMismatch: If a marker on the page is malformed.
        """
        url = self._tracker.url_for(offset)
        logger.debug("Fetching listing page", url=url, offset=offset)

        html, final_url = await self._fetch_html(url)
        page = extract_listing(html, final_url, offset)
        self._tracker.record(page)
        return page

    async def _fetch_html(self, url: str) -> tuple[str, str]:
        """Fetch HTML content from a URL.

        Raises:
            NavigationFailure: If the HTTP request fails.
        """
        try:
            response = await self._client.get(url)
            response.raise_for_status()
            return response.text, str(response.url)
        except httpx.HTTPStatusError as e:
            logger.warning("HTTP error fetching listing", url=url, status=e.response.status_code)
            raise NavigationFailure(
                f"HTTP {e.response.status_code}", url=url, page_content=e.response.text
            ) from e
        except httpx.TimeoutException as e:
            logger.warning("Timeout fetching listing", url=url)
            raise NavigationFailure("timeout", url=url) from e
        except httpx.RequestError as e:
            logger.warning("Request error fetching listing", url=url, error=str(e))
            raise NavigationFailure(f"request error: {e}", url=url) from e
