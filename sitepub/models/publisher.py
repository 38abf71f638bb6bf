"""Data structures returned by the publisher when committing generated content."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class PublishOutcome(str, Enum):
    """Result of a commit or push step on the publishing branch.

    The publisher never returns ``ERROR``; failed steps raise a
    :class:`~sitepub.models.errors.SitePublishError` subclass instead. The value
    is kept for callers that record a failed run as a result, and it never
    counts as a commit.
    """

    NO_CHANGE = "no-change"
    COMMITTED = "committed"
    COMMITTED_AND_PUSHED = "committed-and-pushed"
    ERROR = "error"


@dataclass(slots=True)
class PublicationResult:
    """Outcome returned by the publisher after committing or pushing the website."""

    outcome: PublishOutcome
    branch: str
    source_commit: str | None = None
    message: str | None = None
    commit_hash: str | None = None
    published_at: datetime | None = None

    @property
    def committed(self) -> bool:
        """Return ``True`` when this run created a commit on the publishing branch."""

        return self.outcome in {PublishOutcome.COMMITTED, PublishOutcome.COMMITTED_AND_PUSHED}
