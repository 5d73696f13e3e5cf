"""Unit tests for listing extraction."""

from datetime import UTC, datetime, timedelta

import pytest

from newestcheck.clients.listing import (
    PaginationTracker,
    build_page,
    extract_listing,
    parse_age_title,
    parse_score_id,
)
from newestcheck.errors import NavigationFailure, StructuralMismatch
from newestcheck.models import ListingPage

LISTING_URL = "https://news.ycombinator.com/newest"
T0 = datetime(2024, 10, 18, 10, 0, 0, tzinfo=UTC)


class TestParseAgeTitle:
    """Tests for parse_age_title."""

    def test_epoch_wins_when_present(self) -> None:
        """Should use the unix epoch that follows the ISO part."""
        assert parse_age_title("2024-10-18T10:00:00 1729245600") == T0

    def test_iso_only_is_read_as_utc(self) -> None:
        """Should treat a naive ISO timestamp as UTC."""
        assert parse_age_title("2024-10-18T10:00:00") == T0

    def test_iso_with_offset_is_converted(self) -> None:
        """Should convert an aware ISO timestamp to UTC."""
        parsed = parse_age_title("2024-10-18T12:00:00+02:00")
        assert parsed == T0
        assert parsed.tzinfo == UTC

    @pytest.mark.parametrize("value", ["", "   ", "yesterday", "2024-13-45T99:00:00"])
    def test_invalid_values_raise(self, value: str) -> None:
        """Should raise ValueError for anything that is not a timestamp."""
        with pytest.raises(ValueError):
            parse_age_title(value)


class TestParseScoreId:
    """Tests for parse_score_id."""

    def test_strips_prefix(self) -> None:
        assert parse_score_id("score_41880000") == "41880000"

    @pytest.mark.parametrize("value", ["", "score_", "41880000", "points_41880000"])
    def test_rejects_unexpected_ids(self, value: str) -> None:
        with pytest.raises(ValueError):
            parse_score_id(value)


class TestExtractListing:
    """Tests for extract_listing."""

    def test_extracts_entries_in_order(self, listing_html) -> None:
        """Should extract timestamp, id and title per entry in listing order."""
        html = listing_html(
            [
                ("3", "Third post", T0),
                ("2", "Second post", T0 - timedelta(minutes=1)),
                ("1", "First post", T0 - timedelta(minutes=2)),
            ]
        )

        page = extract_listing(html, LISTING_URL, offset=0)
        records = page.records()

        assert [r.id for r in records] == ["3", "2", "1"]
        assert [r.title for r in records] == ["Third post", "Second post", "First post"]
        assert records[0].timestamp == T0
        assert records[2].timestamp == T0 - timedelta(minutes=2)
        assert page.content == html

    def test_site_links_are_not_titles(self, listing_html) -> None:
        """Should only take the direct title link, not the site link beside it."""
        page = extract_listing(listing_html([("1", "Post", T0)]), LISTING_URL, offset=0)
        assert page.titles == ["Post"]

    def test_more_link_is_resolved_against_page_url(self, listing_html) -> None:
        """Should resolve the pagination href to an absolute URL."""
        page = extract_listing(listing_html([("1", "Post", T0)]), LISTING_URL, offset=0)

        assert page.more_controls == 1
        assert page.next_url == "https://news.ycombinator.com/newest?next=100&n=31"

    def test_missing_more_link(self, listing_html) -> None:
        page = extract_listing(listing_html([("1", "Post", T0)], more_href=None), LISTING_URL, 0)
        assert page.more_controls == 0
        assert page.next_url is None

    def test_duplicated_more_link_has_no_next_url(self, listing_html) -> None:
        page = extract_listing(listing_html([("1", "Post", T0)], more_count=2), LISTING_URL, 0)
        assert page.more_controls == 2
        assert page.next_url is None

    def test_malformed_age_raises_structural_mismatch(self) -> None:
        """Should report a malformed timestamp marker as a structural mismatch."""
        html = (
            '<span class="titleline"><a href="x">Post</a></span>'
            '<span class="score" id="score_1">1 point</span>'
            '<span class="age" title="not a time">now</span>'
        )
        with pytest.raises(StructuralMismatch, match="malformed marker"):
            extract_listing(html, LISTING_URL, offset=0)

    def test_age_without_title_raises_structural_mismatch(self) -> None:
        html = (
            '<span class="titleline"><a href="x">Post</a></span>'
            '<span class="score" id="score_1">1 point</span>'
            '<span class="age">now</span>'
        )
        with pytest.raises(StructuralMismatch):
            extract_listing(html, LISTING_URL, offset=0)


class TestListingPageRecords:
    """Tests for the structural precondition on ListingPage.records."""

    def test_unequal_counts_raise(self) -> None:
        """Five timestamps but four titles should be a structural mismatch."""
        page = ListingPage(
            offset=30,
            url=LISTING_URL,
            timestamps=[T0 - timedelta(minutes=i) for i in range(5)],
            ids=[str(i) for i in range(5)],
            titles=[f"Post {i}" for i in range(4)],
            content="<html>partial</html>",
        )

        with pytest.raises(StructuralMismatch) as exc_info:
            page.records()

        error = exc_info.value
        assert error.counts == {"timestamps": 5, "ids": 5, "titles": 4}
        assert error.page_content == "<html>partial</html>"
        assert error.context()["titles"] == 4

    def test_empty_page_has_no_records(self) -> None:
        page = ListingPage(offset=0, url=LISTING_URL, timestamps=[], ids=[], titles=[])
        assert page.records() == []


class TestBuildPage:
    """Tests for build_page."""

    def test_titles_are_stripped(self) -> None:
        page = build_page(
            offset=0,
            url=LISTING_URL,
            ages=["2024-10-18T10:00:00 1729245600"],
            score_ids=["score_7"],
            titles=["  Padded title \n"],
            more_hrefs=[],
            content="",
        )
        assert page.titles == ["Padded title"]

    def test_missing_score_id_raises_structural_mismatch(self) -> None:
        with pytest.raises(StructuralMismatch):
            build_page(
                offset=0,
                url=LISTING_URL,
                ages=["2024-10-18T10:00:00 1729245600"],
                score_ids=[None],
                titles=["Post"],
                more_hrefs=[],
                content="",
            )


class TestPaginationTracker:
    """Tests for PaginationTracker."""

    def _page(self, offset: int, size: int, more_links: list[str]) -> ListingPage:
        return ListingPage(
            offset=offset,
            url=LISTING_URL,
            timestamps=[T0] * size,
            ids=[str(offset + i) for i in range(size)],
            titles=["Post"] * size,
            more_links=more_links,
        )

    def test_offset_zero_is_listing_url(self) -> None:
        tracker = PaginationTracker(LISTING_URL)
        assert tracker.url_for(0) == LISTING_URL

    def test_follows_single_more_link(self) -> None:
        tracker = PaginationTracker(LISTING_URL)
        tracker.record(self._page(0, 30, [f"{LISTING_URL}?next=1&n=31"]))

        assert tracker.next_offset == 30
        assert tracker.url_for(30) == f"{LISTING_URL}?next=1&n=31"

    def test_out_of_sequence_offset_raises(self) -> None:
        tracker = PaginationTracker(LISTING_URL)
        tracker.record(self._page(0, 30, [f"{LISTING_URL}?next=1&n=31"]))

        with pytest.raises(NavigationFailure, match="out of sequence"):
            tracker.url_for(60)

    def test_offset_before_first_page_raises(self) -> None:
        tracker = PaginationTracker(LISTING_URL)
        with pytest.raises(NavigationFailure):
            tracker.url_for(30)

    @pytest.mark.parametrize("links", [[], ["a", "b"]])
    def test_missing_or_duplicated_control_raises(self, links: list[str]) -> None:
        tracker = PaginationTracker(LISTING_URL)
        tracker.record(self._page(0, 30, links))

        with pytest.raises(NavigationFailure) as exc_info:
            tracker.url_for(30)
        assert exc_info.value.more_controls == len(links)
