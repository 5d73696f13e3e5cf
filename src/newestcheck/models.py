"""Shared data models for newestcheck."""

from dataclasses import dataclass, field, replace
from datetime import datetime

from newestcheck.errors import StructuralMismatch


@dataclass(frozen=True)
class ArticleRecord:
    """One listed entry."""

    id: str
    title: str
    timestamp: datetime


@dataclass
class ListingPage:
    """Raw extraction of a single listing page.

    Timestamps, ids and titles are kept as separate lists so that a page
    which rendered partially can be detected before anything is compared.
    """

    offset: int
    url: str
    timestamps: list[datetime]
    ids: list[str]
    titles: list[str]
    more_links: list[str] = field(default_factory=list)
    content: str = ""

    @property
    def more_controls(self) -> int:
        """Number of pagination controls found on the page."""
        return len(self.more_links)

    @property
    def next_url(self) -> str | None:
        """URL of the pagination control, if exactly one exists."""
        if len(self.more_links) != 1:
            return None
        return self.more_links[0]

    def records(self) -> list[ArticleRecord]:
        """Pair up the extracted markers.

        Raises:
            StructuralMismatch: If the marker counts differ.
        """
        counts = {
            "timestamps": len(self.timestamps),
            "ids": len(self.ids),
            "titles": len(self.titles),
        }
        if len(set(counts.values())) != 1:
            raise StructuralMismatch(
                f"page at offset {self.offset} has unequal marker counts",
                counts=counts,
                url=self.url,
                page_content=self.content,
            )
        return [
            ArticleRecord(id=article_id, title=title, timestamp=timestamp)
            for timestamp, article_id, title in zip(self.timestamps, self.ids, self.titles)
        ]


@dataclass(frozen=True)
class VerificationCursor:
    """Running state carried between page fetches."""

    articles_checked: int
    newest_seen: datetime
    last_record: ArticleRecord | None = None
    seen_ids: frozenset[str] = frozenset()

    @classmethod
    def start(cls, upper_bound: datetime) -> "VerificationCursor":
        """Create a cursor with nothing checked yet."""
        return cls(articles_checked=0, newest_seen=upper_bound)

    def has_seen(self, article_id: str) -> bool:
        return article_id in self.seen_ids

    def accept(self, record: ArticleRecord) -> "VerificationCursor":
        """Return a new cursor with ``record`` verified.

        The caller is responsible for checking the record against the bound.
        """
        return replace(
            self,
            articles_checked=self.articles_checked + 1,
            newest_seen=record.timestamp,
            last_record=record,
            seen_ids=self.seen_ids | {record.id},
        )


@dataclass
class PageReport:
    """Progress figures for one page."""

    offset: int
    fetched: int
    checked: int = 0
    skipped_duplicates: int = 0
    ignored: int = 0
    newest: datetime | None = None
    oldest: datetime | None = None


@dataclass
class VerificationResult:
    """Result of a complete run."""

    target: int
    verified: int
    pages_fetched: int
    skipped_duplicates: int = 0
    first_timestamp: datetime | None = None
    last_timestamp: datetime | None = None

    @property
    def passed(self) -> bool:
        return self.verified == self.target
