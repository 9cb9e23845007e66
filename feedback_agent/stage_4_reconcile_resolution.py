"""
Stage 4: Reconcile Resolution — PR Review Feedback

PURPOSE:
    The REST endpoint for review comments does not say whether the thread a
    comment belongs to has been resolved. That information is only available
    through GraphQL (pullRequest.reviewThreads.isResolved). This stage merges
    it back into the comment set. A comment is resolved when it is the first
    comment (the "anchor") of a resolved thread.

CALLED BY:
    feedback_pipeline_main.py: passes the filtered comments and a zero-arg
    callable that queries the review threads (GitHubAPI.list_review_threads
    bound to the PR number).

DESIGN DECISIONS:
    - Resolution status is an enrichment, not a requirement. If the GraphQL
      query fails for any reason (missing scope, API hiccup, unexpected
      payload), we return the comments untouched with success=False. The
      caller logs a warning and the run continues with everything open.
    - The result dict mirrors the other fallible stages ('success' / 'error')
      so the caller has to look at the outcome rather than rely on an
      exception being swallowed somewhere.
    - Only inline comments take part. Structured comments extracted in
      stage 2 live in an issue comment, which has no review thread.
    - Comments are frozen dataclasses. Resolved ones are new instances built
      with dataclasses.replace.
"""

import dataclasses
from typing import Callable, List, Set

from feedback_agent.models import Comment, SOURCE_INLINE


def reconcile_resolution(
    comments: List[Comment],
    fetch_review_threads: Callable[[], List[dict]]
) -> dict:
    """
    Mark comments that anchor a resolved review thread as resolved.

    This is the ONLY public function in this file. It never raises.

    Args:
        comments: The filtered comment set (all still resolved=False)
        fetch_review_threads: Callable returning a list of
            {"is_resolved": bool, "anchor_id": int or None} dicts

    Returns:
        dict with keys:
            - 'success' (bool): False if the thread query failed
            - 'comments' (list[Comment]): reconciled comments on success,
              the input list unchanged on failure
            - 'resolved_ids' (set[int]): anchor ids of resolved threads
            - 'error' (str or None): why reconciliation was skipped
    """
    try:
        threads = fetch_review_threads()
        resolved_ids = _resolved_anchor_ids(threads)
    except Exception as e:
        return {
            "success": False,
            "comments": comments,
            "resolved_ids": set(),
            "error": f"Could not fetch resolved status via GraphQL: {e}",
        }

    reconciled = []
    for comment in comments:
        is_resolved = comment.source == SOURCE_INLINE and comment.id in resolved_ids
        if comment.resolved != is_resolved:
            comment = dataclasses.replace(comment, resolved=is_resolved)
        reconciled.append(comment)

    return {
        "success": True,
        "comments": reconciled,
        "resolved_ids": resolved_ids,
        "error": None,
    }


def _resolved_anchor_ids(threads: List[dict]) -> Set[int]:
    resolved_ids = set()
    for thread in threads:
        anchor_id = thread.get("anchor_id")
        if thread.get("is_resolved") and anchor_id is not None:
            resolved_ids.add(int(anchor_id))
    return resolved_ids
