"""
Stage 1: Normalize Comments — PR Review Feedback

PURPOSE:
    Feedback on a PR arrives from three differently shaped GitHub endpoints:

      - pulls/{n}/comments   inline review comments, attached to a file/line
      - pulls/{n}/reviews    top-level review submissions with a summary body
      - issues/{n}/comments  PR-level conversation comments. Some bots
                             (Greptile) post structured findings here.

    This stage converts each raw payload into the canonical Comment / Review
    shape from models.py, so every later stage depends on one shape only.
    There is one adapter function per source kind.

CALLED BY:
    feedback_pipeline_main.py: passes the three raw lists straight from
    GitHubAPI.

DESIGN DECISIONS:
    - Inline comments on outdated diffs have line=None but keep original_line.
      We fall back to original_line so the item still points somewhere useful.
    - A deleted GitHub user comes back as user=None. We use "unknown" rather
      than dropping the comment.
    - Reviews with an empty body (a bare approval, for example) are dropped
      here. The stricter length/state filter lives in stage 5.
    - Issue comments from anyone other than a structured bot are ignored. We
      are not trying to classify free-form conversation.
"""

from typing import List, Optional

from feedback_agent.models import Comment, Review, GENERAL_PATH, SOURCE_INLINE
from feedback_agent.stage_2_extract_structured_blocks import (
    STRUCTURED_BLOCK_MARKER,
    STRUCTURED_BOT_LOGINS,
    extract_structured_comments,
)


def normalize_sources(
    review_comments: List[dict],
    reviews: List[dict],
    issue_comments: List[dict]
) -> dict:
    """
    Normalize all three raw GitHub sources in one pass.

    Args:
        review_comments: Raw payloads from GET pulls/{n}/comments
        reviews: Raw payloads from GET pulls/{n}/reviews
        issue_comments: Raw payloads from GET issues/{n}/comments

    Returns:
        dict with keys:
            - 'comments' (list[Comment]): inline comments first, then the
              structured comments extracted from bot issue comments
            - 'reviews' (list[Review]): reviews with a non-empty body
            - 'structured_count' (int): how many comments came from stage 2
    """
    comments = [normalize_review_comment(raw) for raw in review_comments]

    structured: List[Comment] = []
    for raw in issue_comments:
        structured.extend(normalize_issue_comment(raw))

    normalized_reviews = []
    for raw in reviews:
        review = normalize_review(raw)
        if review is not None:
            normalized_reviews.append(review)

    return {
        "comments": comments + structured,
        "reviews": normalized_reviews,
        "structured_count": len(structured),
    }


def normalize_review_comment(raw: dict) -> Comment:
    """Convert one inline review comment payload into a Comment."""
    return Comment(
        id=raw["id"],
        path=raw.get("path") or GENERAL_PATH,
        line=raw.get("line") or raw.get("original_line") or None,
        body=raw.get("body") or "",
        author=_login(raw),
        url=raw.get("html_url", ""),
        created_at=raw.get("created_at", ""),
        resolved=False,
        source=SOURCE_INLINE,
    )


def normalize_review(raw: dict) -> Optional[Review]:
    """Convert one review payload into a Review, or None when its body is blank."""
    body = raw.get("body") or ""
    if not body.strip():
        return None

    return Review(
        id=raw["id"],
        body=body,
        author=_login(raw),
        state=raw.get("state", ""),
        url=raw.get("html_url", ""),
        submitted_at=raw.get("submitted_at") or "",
    )


def normalize_issue_comment(raw: dict) -> List[Comment]:
    """
    Convert one PR-level issue comment into zero or more Comments.

    Only comments from a structured bot that contain the block marker are
    parsed. Everything else yields an empty list.
    """
    author = _login(raw)
    body = raw.get("body") or ""

    if author not in STRUCTURED_BOT_LOGINS or STRUCTURED_BLOCK_MARKER not in body:
        return []

    return extract_structured_comments(
        source_id=raw["id"],
        body=body,
        author=author,
        url=raw.get("html_url", ""),
        created_at=raw.get("created_at", ""),
    )


def _login(raw: dict) -> str:
    user = raw.get("user") or {}
    return user.get("login") or "unknown"
