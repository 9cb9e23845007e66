"""
Stage 5: Aggregate Feedback — PR Review Feedback

PURPOSE:
    Turn the reconciled comment set and the review list into one
    FeedbackSnapshot: open vs. resolved, reviews trimmed to the ones worth
    reading, and a generation timestamp.

ORDERING RULES:
    - open and resolved together partition the input exactly. Both keep the
      order in which comments were encountered.
    - group_by_file groups open comments by path. Comments without a path go
      under "general". Groups come out in the order their path was first
      seen (NOT alphabetical), and each group is sorted by line, with a
      missing line counted as 0 so file-level comments come first.
    - A review is kept when its body is longer than MIN_REVIEW_BODY_LENGTH
      characters and it is not PENDING. A pending review is the viewer's own
      unsubmitted draft.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional

from feedback_agent.models import Comment, FeedbackSnapshot, Review, GENERAL_PATH

MIN_REVIEW_BODY_LENGTH = 20
PENDING_STATE = "PENDING"


def aggregate_feedback(
    pr_number: int,
    pr_title: str,
    pr_url: str,
    comments: List[Comment],
    reviews: List[Review],
    updated_at: Optional[str] = None
) -> FeedbackSnapshot:
    """
    Build the FeedbackSnapshot for one run.

    Args:
        pr_number: The PR number
        pr_title: The PR title, shown as the link text in the document
        pr_url: The PR html_url
        comments: Reconciled comments (output of stage 4)
        reviews: Filtered reviews (output of stage 3)
        updated_at: ISO-8601 timestamp. Defaults to now (UTC). Pass one in
                    for reproducible output.
    """
    open_comments = [c for c in comments if not c.resolved]
    resolved_comments = [c for c in comments if c.resolved]

    return FeedbackSnapshot(
        pr_number=pr_number,
        pr_title=pr_title,
        pr_url=pr_url,
        open_comments=open_comments,
        resolved_comments=resolved_comments,
        reviews=filter_reviews(reviews),
        updated_at=updated_at or _utc_timestamp(),
    )


def group_by_file(comments: List[Comment]) -> Dict[str, List[Comment]]:
    groups: Dict[str, List[Comment]] = {}
    for comment in comments:
        groups.setdefault(comment.path or GENERAL_PATH, []).append(comment)

    for path in groups:
        groups[path].sort(key=lambda c: c.line or 0)

    return groups


def filter_reviews(reviews: List[Review]) -> List[Review]:
    return [
        r for r in reviews
        if len(r.body) > MIN_REVIEW_BODY_LENGTH and r.state != PENDING_STATE
    ]


def _utc_timestamp() -> str:
    # Same shape as JavaScript's toISOString(), e.g. 2026-02-14T09:30:12.345Z
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"
