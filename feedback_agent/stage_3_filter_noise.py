"""
Stage 3: Filter Noise — PR Review Feedback

PURPOSE:
    Some bot comments are not feedback at all. The typical case is CodeRabbit's
    "rate limit exceeded" notice, which would otherwise show up as an
    unchecked item that no code change can ever fix.

    A body is dropped when it contains BOTH terms of one rule (case-insensitive).
    One term names the bot and the other names the notice type. Either term
    alone is normal review language ("coderabbit suggested...", "add a
    rate limit here") and must be kept.

    This is a static list, not a classifier. Add a tuple to IGNORED_BOT_NOTICES
    to silence another known notice.
"""

from typing import List, Tuple

from feedback_agent.models import Comment, Review

# (bot term, notice term) pairs. All lowercase.
IGNORED_BOT_NOTICES: Tuple[Tuple[str, str], ...] = (
    ("coderabbit", "rate limit"),
)


def is_ignored_bot_comment(body: str) -> bool:
    lower_body = (body or "").lower()
    for bot_term, notice_term in IGNORED_BOT_NOTICES:
        if bot_term in lower_body and notice_term in lower_body:
            return True
    return False


def filter_noise(comments: List[Comment], reviews: List[Review]) -> dict:
    """
    Drop ignored bot notices from both comments and reviews.

    Returns:
        dict with keys 'comments', 'reviews' (the kept items, order preserved)
        and 'dropped' (int, how many items were removed in total).
    """
    kept_comments = [c for c in comments if not is_ignored_bot_comment(c.body)]
    kept_reviews = [r for r in reviews if not is_ignored_bot_comment(r.body)]

    dropped = (len(comments) - len(kept_comments)) + (len(reviews) - len(kept_reviews))
    return {
        "comments": kept_comments,
        "reviews": kept_reviews,
        "dropped": dropped,
    }
