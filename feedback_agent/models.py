"""
Data Models — PR Review Feedback

The three shapes every stage after normalization works with:

    Comment: one actionable piece of reviewer feedback
    Review: one top-level review submission (approve / request changes / comment)
    FeedbackSnapshot: the aggregated result for one pipeline run

Raw GitHub API payloads never travel past stage 1. Inline review comments and
extracted bot blocks both become Comment; reviews become Review.
"""

from dataclasses import dataclass, field
from typing import List, Optional

# Path used for comments that are not attached to any file.
GENERAL_PATH = "general"

# Comment.source values. Only inline comments live in a GitHub review thread,
# so only they can be marked resolved.
SOURCE_INLINE = "inline"
SOURCE_STRUCTURED = "structured"


@dataclass(frozen=True)
class Comment:
    """
    One unit of reviewer feedback.

    resolved stays False until stage 4 (reconcile_resolution) replaces the
    instance with a resolved copy.
    """
    id: int
    path: str
    line: Optional[int]
    body: str
    author: str
    url: str
    created_at: str
    resolved: bool = False
    source: str = SOURCE_INLINE


@dataclass(frozen=True)
class Review:
    """A top-level review submission. state is GitHub's enum string, e.g. CHANGES_REQUESTED."""
    id: int
    body: str
    author: str
    state: str
    url: str
    submitted_at: str


@dataclass(frozen=True)
class FeedbackSnapshot:
    pr_number: int
    pr_title: str
    pr_url: str
    open_comments: List[Comment] = field(default_factory=list)
    resolved_comments: List[Comment] = field(default_factory=list)
    reviews: List[Review] = field(default_factory=list)
    updated_at: str = ""

    @property
    def open_count(self) -> int:
        return len(self.open_comments)

    @property
    def resolved_count(self) -> int:
        return len(self.resolved_comments)
