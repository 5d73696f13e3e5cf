"""Verification failures.

Every error here is fatal for the run. They carry enough raw context (page
content, counts, compared timestamps) to diagnose the upstream site by hand.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from newestcheck.models import ArticleRecord


class VerificationError(Exception):
    """Base class for fatal verification failures."""

    kind = "verification_error"

    def __init__(self, reason: str, *, url: str | None = None, page_content: str | None = None) -> None:
        self.reason = reason
        self.url = url
        self.page_content = page_content
        super().__init__(reason)

    def context(self) -> dict[str, Any]:
        """Structured fields for logging."""
        return {"kind": self.kind, "reason": self.reason, "url": self.url}


class OrderViolation(VerificationError):
    """An entry is newer than the entry verified before it."""

    kind = "order_violation"

    def __init__(
        self,
        record: "ArticleRecord",
        bound: datetime,
        position: int,
        previous: "ArticleRecord | None" = None,
        *,
        url: str | None = None,
        page_content: str | None = None,
    ) -> None:
        self.record = record
        self.bound = bound
        self.position = position
        self.previous = previous
        reason = (
            f"entry #{position} ({record.id}) at {record.timestamp.isoformat()} "
            f"is newer than {bound.isoformat()}"
        )
        super().__init__(reason, url=url, page_content=page_content)

    def context(self) -> dict[str, Any]:
        ctx = super().context()
        ctx.update(
            position=self.position,
            article_id=self.record.id,
            title=self.record.title,
            timestamp=self.record.timestamp.isoformat(),
            bound=self.bound.isoformat(),
            previous_id=self.previous.id if self.previous else None,
            previous_title=self.previous.title if self.previous else None,
        )
        return ctx


class StructuralMismatch(VerificationError):
    """A page rendered inconsistently: marker counts differ or a marker is malformed."""

    kind = "structural_mismatch"

    def __init__(
        self,
        reason: str,
        *,
        counts: dict[str, int] | None = None,
        url: str | None = None,
        page_content: str | None = None,
    ) -> None:
        self.counts = counts or {}
        super().__init__(reason, url=url, page_content=page_content)

    def context(self) -> dict[str, Any]:
        ctx = super().context()
        ctx.update(self.counts)
        return ctx


class NavigationFailure(VerificationError):
    """The next page could not be reached."""

    kind = "navigation_failure"

    def __init__(
        self,
        reason: str,
        *,
        more_controls: int | None = None,
        url: str | None = None,
        page_content: str | None = None,
    ) -> None:
        self.more_controls = more_controls
        super().__init__(reason, url=url, page_content=page_content)

    def context(self) -> dict[str, Any]:
        ctx = super().context()
        ctx["more_controls"] = self.more_controls
        return ctx


class DuplicateEntry(VerificationError):
    """An entry id was listed again after it had already been verified."""

    kind = "duplicate_entry"

    def __init__(
        self,
        record: "ArticleRecord",
        *,
        url: str | None = None,
        page_content: str | None = None,
    ) -> None:
        self.record = record
        super().__init__(
            f"entry {record.id} was already verified earlier in this run",
            url=url,
            page_content=page_content,
        )

    def context(self) -> dict[str, Any]:
        ctx = super().context()
        ctx.update(article_id=self.record.id, title=self.record.title)
        return ctx
