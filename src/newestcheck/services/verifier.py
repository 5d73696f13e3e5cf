"""Walks the newest listing and verifies it is sorted newest first."""

import asyncio
import random
from collections.abc import Awaitable, Callable, Sequence
from datetime import UTC, datetime, timedelta
from typing import Literal, Protocol

from newestcheck.errors import DuplicateEntry, NavigationFailure, OrderViolation
from newestcheck.models import (
    ArticleRecord,
    ListingPage,
    PageReport,
    VerificationCursor,
    VerificationResult,
)
from newestcheck.utils.logging import get_logger

logger = get_logger(__name__)

DuplicatePolicy = Literal["skip", "fail"]


class PageSource(Protocol):
    """Anything that can load the listing page starting at a given offset."""

    async def fetch_page(self, offset: int) -> ListingPage: ...


def check_entries(
    cursor: VerificationCursor,
    records: Sequence[ArticleRecord],
    target: int,
    page: ListingPage,
    duplicate_policy: DuplicatePolicy = "skip",
) -> tuple[VerificationCursor, PageReport]:
    """Verify one page of records against the cursor.

    Records are checked in listing order until ``target`` entries have been
    verified in total; the rest of the page is ignored.

    Args:
        cursor: State after the previous page.
        records: Records extracted from ``page``.
        target: Total number of entries the run must verify.
        page: The page the records came from, attached to any error.
        duplicate_policy: ``skip`` to pass over ids already verified in this
            run, ``fail`` to treat them as fatal.

    Returns:
        The advanced cursor and a report for the page.

    Raises:
        OrderViolation: If a record is newer than the current bound.
        DuplicateEntry: If a repeated id is found under the ``fail`` policy.
    """
    report = PageReport(offset=page.offset, fetched=len(records))

    for index, record in enumerate(records):
        if cursor.articles_checked >= target:
            report.ignored = len(records) - index
            break

        if cursor.has_seen(record.id):
            if duplicate_policy == "fail":
                raise DuplicateEntry(record, url=page.url, page_content=page.content)
            logger.warning(
                "Skipping entry already verified",
                article_id=record.id,
                title=record.title,
                offset=page.offset + index,
            )
            report.skipped_duplicates += 1
            continue

        if record.timestamp > cursor.newest_seen:
            raise OrderViolation(
                record,
                bound=cursor.newest_seen,
                position=cursor.articles_checked + 1,
                previous=cursor.last_record,
                url=page.url,
                page_content=page.content,
            )

        cursor = cursor.accept(record)
        logger.debug(
            "Entry verified",
            position=cursor.articles_checked,
            article_id=record.id,
            title=record.title,
            timestamp=record.timestamp.isoformat(),
        )
        report.checked += 1
        if report.newest is None:
            report.newest = record.timestamp
        report.oldest = record.timestamp

    return cursor, report


class Pacer:
    """Random delay between page transitions to avoid upstream throttling."""

    def __init__(
        self,
        min_delay_ms: int = 200,
        max_delay_ms: int = 1000,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        if max_delay_ms < min_delay_ms:
            raise ValueError("max_delay_ms must be >= min_delay_ms")
        self._min_delay_ms = min_delay_ms
        self._max_delay_ms = max_delay_ms
        self._rng = rng or random.Random()
        self._sleep = sleep

    def next_delay(self) -> float:
        """Next delay in seconds."""
        return self._rng.uniform(self._min_delay_ms, self._max_delay_ms) / 1000

    async def wait(self) -> float:
        delay = self.next_delay()
        await self._sleep(delay)
        return delay


class ListingVerifier:
    """Pages through the listing until the target count is verified."""

    def __init__(
        self,
        source: PageSource,
        pacer: Pacer | None = None,
        duplicate_policy: DuplicatePolicy = "skip",
    ) -> None:
        self._source = source
        self._pacer = pacer or Pacer()
        self._duplicate_policy = duplicate_policy

    async def run(
        self,
        target: int,
        upper_bound: datetime | None = None,
        clock_skew: timedelta = timedelta(0),
    ) -> VerificationResult:
        """Verify that the first ``target`` entries are sorted newest first.

        Args:
            target: Number of entries to verify.
            upper_bound: Timestamp no entry may exceed. Defaults to the
                current time plus ``clock_skew``.
            clock_skew: Allowance for the local clock lagging the site's.

        Returns:
            VerificationResult for a passing run.

        Raises:
            VerificationError: On the first order violation, structural
                mismatch, duplicate (under the ``fail`` policy) or navigation
                failure.
        """
        if target < 0:
            raise ValueError("target must be >= 0")

        if upper_bound is None:
            upper_bound = datetime.now(UTC) + clock_skew
        cursor = VerificationCursor.start(upper_bound)
        result = VerificationResult(target=target, verified=0, pages_fetched=0)

        logger.info("Starting verification", target=target, upper_bound=upper_bound.isoformat())

        offset = 0
        while cursor.articles_checked < target:
            if result.pages_fetched:
                delay = await self._pacer.wait()
                logger.debug("Paced page transition", delay_s=round(delay, 3))

            page = await self._source.fetch_page(offset)
            result.pages_fetched += 1

            records = page.records()
            if not records:
                raise NavigationFailure(
                    f"listing page at offset {offset} has no entries",
                    more_controls=page.more_controls,
                    url=page.url,
                    page_content=page.content,
                )

            cursor, report = check_entries(
                cursor, records, target, page, self._duplicate_policy
            )
            result.skipped_duplicates += report.skipped_duplicates
            if result.first_timestamp is None:
                result.first_timestamp = report.newest

            logger.info(
                "Page verified",
                page=result.pages_fetched,
                offset=report.offset,
                fetched=report.fetched,
                checked=report.checked,
                skipped=report.skipped_duplicates,
                ignored=report.ignored,
                verified=cursor.articles_checked,
                target=target,
                newest=report.newest.isoformat() if report.newest else None,
                oldest=report.oldest.isoformat() if report.oldest else None,
            )

            offset += len(records)
            if cursor.articles_checked < target and page.more_controls != 1:
                raise NavigationFailure(
                    f"expected exactly one pagination control, found {page.more_controls}",
                    more_controls=page.more_controls,
                    url=page.url,
                    page_content=page.content,
                )

        result.verified = cursor.articles_checked
        if cursor.last_record is not None:
            result.last_timestamp = cursor.last_record.timestamp
        logger.info(
            "Verification passed",
            verified=result.verified,
            pages=result.pages_fetched,
            skipped=result.skipped_duplicates,
        )
        return result
