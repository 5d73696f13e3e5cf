"""DOM contract of the newest listing and marker parsing."""

from collections.abc import Sequence
from datetime import UTC, datetime
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from newestcheck.errors import NavigationFailure, StructuralMismatch
from newestcheck.models import ListingPage

AGE_SELECTOR = ".age"
TITLE_SELECTOR = ".titleline > a"
SCORE_SELECTOR = ".score"
MORE_SELECTOR = "a.morelink"

SCORE_ID_PREFIX = "score_"


def parse_age_title(value: str) -> datetime:
    """Parse the ``title`` attribute of an age marker.

    The attribute holds an ISO-8601 timestamp, optionally followed by the
    unix epoch (``2024-10-18T20:41:05 1729284065``). The epoch wins when
    present; a naive ISO value is read as UTC.

    Raises:
        ValueError: If the value cannot be parsed.
    """
    parts = value.split()
    if not parts:
        raise ValueError("empty timestamp")
    if len(parts) > 1 and parts[-1].isdigit():
        return datetime.fromtimestamp(int(parts[-1]), tz=UTC)
    timestamp = datetime.fromisoformat(parts[0])
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=UTC)
    return timestamp.astimezone(UTC)


def parse_score_id(value: str) -> str:
    """Extract the entry id from a score marker's ``id`` attribute.

    Raises:
        ValueError: If the attribute does not carry the expected prefix.
    """
    if not value.startswith(SCORE_ID_PREFIX) or len(value) == len(SCORE_ID_PREFIX):
        raise ValueError(f"unexpected score id {value!r}")
    return value[len(SCORE_ID_PREFIX):]


def build_page(
    offset: int,
    url: str,
    ages: Sequence[str | None],
    score_ids: Sequence[str | None],
    titles: Sequence[str | None],
    more_hrefs: Sequence[str | None],
    content: str,
) -> ListingPage:
    """Turn raw marker attribute values into a ListingPage.

    Raises:
        StructuralMismatch: If any marker is missing its attribute or is malformed.
    """
    try:
        timestamps = [parse_age_title(age or "") for age in ages]
        ids = [parse_score_id(score_id or "") for score_id in score_ids]
    except ValueError as e:
        raise StructuralMismatch(
            f"malformed marker on page at offset {offset}: {e}",
            url=url,
            page_content=content,
        ) from e

    return ListingPage(
        offset=offset,
        url=url,
        timestamps=timestamps,
        ids=ids,
        titles=[(title or "").strip() for title in titles],
        more_links=[urljoin(url, href or "") for href in more_hrefs],
        content=content,
    )


def extract_listing(html: str, url: str, offset: int) -> ListingPage:
    """Extract a listing page from static HTML."""
    soup = BeautifulSoup(html, "html.parser")
    return build_page(
        offset=offset,
        url=url,
        ages=[el.get("title") for el in soup.select(AGE_SELECTOR)],
        score_ids=[el.get("id") for el in soup.select(SCORE_SELECTOR)],
        titles=[el.get_text() for el in soup.select(TITLE_SELECTOR)],
        more_hrefs=[el.get("href") for el in soup.select(MORE_SELECTOR)],
        content=html,
    )


class PaginationTracker:
    """Keeps page fetches in sequence.

    Offset 0 always maps to the listing URL. Any later offset must be the one
    reached by the previous page, and that page must have exposed exactly one
    pagination control.
    """

    def __init__(self, listing_url: str) -> None:
        self._listing_url = listing_url
        self._last_page: ListingPage | None = None

    @property
    def next_offset(self) -> int:
        if self._last_page is None:
            return 0
        return self._last_page.offset + len(self._last_page.timestamps)

    def url_for(self, offset: int) -> str:
        """Resolve the URL that serves entries starting at ``offset``.

        Raises:
            NavigationFailure: If the offset is out of sequence or the previous
                page has no single pagination control.
        """
        if offset == 0:
            return self._listing_url

        last = self._last_page
        if last is None or offset != self.next_offset:
            raise NavigationFailure(
                f"offset {offset} is out of sequence (next is {self.next_offset})",
                url=last.url if last else self._listing_url,
            )
        if last.next_url is None:
            raise NavigationFailure(
                f"expected exactly one pagination control, found {last.more_controls}",
                more_controls=last.more_controls,
                url=last.url,
                page_content=last.content,
            )
        return last.next_url

    def record(self, page: ListingPage) -> None:
        self._last_page = page
