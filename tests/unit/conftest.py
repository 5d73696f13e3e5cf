"""Shared fixtures for unit tests."""

from collections.abc import Callable
from datetime import datetime

import pytest

ListingHtml = Callable[..., str]


def _row(article_id: str, title: str, timestamp: datetime) -> str:
    age = f"{timestamp.strftime('%Y-%m-%dT%H:%M:%S')} {int(timestamp.timestamp())}"
    return (
        f'<tr class="athing submission" id="{article_id}">'
        f'<td class="title"><span class="rank">1.</span></td>'
        f'<td class="title"><span class="titleline">'
        f'<a href="https://example.com/{article_id}">{title}</a>'
        f'<span class="sitebit comhead"> (<a href="from?site=example.com">'
        f'<span class="sitestr">example.com</span></a>)</span>'
        f"</span></td></tr>"
        f'<tr><td colspan="2"></td><td class="subtext"><span class="subline">'
        f'<span class="score" id="score_{article_id}">1 point</span> by '
        f'<a href="user?id=someone" class="hnuser">someone</a> '
        f'<span class="age" title="{age}"><a href="item?id={article_id}">1 minute ago</a></span>'
        f"</span></td></tr>"
    )


@pytest.fixture
def listing_html() -> ListingHtml:
    """Build a newest-listing page from (id, title, timestamp) entries."""

    def build(
        entries: list[tuple[str, str, datetime]],
        more_href: str | None = "newest?next=100&n=31",
        more_count: int = 1,
    ) -> str:
        rows = "".join(_row(*entry) for entry in entries)
        more = ""
        if more_href is not None:
            more = "".join(
                f'<tr><td colspan="2"></td><td class="title">'
                f'<a href="{more_href}" class="morelink" rel="next">More</a></td></tr>'
                for _ in range(more_count)
            )
        return (
            "<html><body><center><table id=\"hnmain\"><tr><td>"
            f"<table>{rows}<tr class=\"morespace\"></tr>{more}</table>"
            "</td></tr></table></center></body></html>"
        )

    return build
