"""
Stage 7: Publish Feedback — PR Review Feedback

PURPOSE:
    Write the rendered document to its two sinks:

      1. A PR comment, updated in place on every run. We find "our" comment
         through a hidden HTML marker on its first line, so the PR has one
         feedback comment no matter how many times the action runs.
      2. A Markdown file committed to the PR's head branch, so an AI
         assistant working on the checkout can read it directly. When no
         open items remain, the file is deleted instead of committed.

CALLED BY:
    feedback_pipeline_main.py: after every fetch has succeeded, so a failed
    fetch never leads to a half-published run.

DESIGN DECISIONS:
    - Every write reads first. The comment upsert looks up the existing
      marker comment. The file upsert/delete reads the current blob sha,
      which the contents API requires for updates and deletes.
    - A missing file is normal (first run, or already deleted). Any other
      error from GitHub propagates.
    - There is no rollback. Each write is idempotent, and the next run
      overwrites whatever the last successful one left behind.
    - Commit messages carry [skip ci] so the feedback commit does not
      re-trigger the PR's CI workflows.

COST:
    Comment sink: one paginated list plus one create or update.
    File sink: one contents read plus one write or delete.
"""

import logging
from typing import Optional

from feedback_agent.github_api import GitHubAPI

logger = logging.getLogger(__name__)

FEEDBACK_MARKER = "<!-- AGENT_CODE_REVIEW_FEEDBACK -->"


def publish_feedback(
    gh: GitHubAPI,
    pr_number: int,
    branch: str,
    markdown: str,
    open_count: int,
    post_comment: bool,
    feedback_file: str
) -> dict:
    """
    Publish the rendered document to the enabled sinks.

    Args:
        gh: GitHubAPI bound to the PR's repository
        pr_number: The PR number
        branch: The PR head branch (pr["head"]["ref"])
        markdown: Output of stage 6
        open_count: Number of open comments. 0 means delete the file.
        post_comment: Whether to create/update the PR comment
        feedback_file: Repo path for the committed file. Empty disables it.

    Returns:
        dict with keys:
            - 'comment_id' (int or None): id of the created/updated comment
            - 'comment_action' (str or None): 'created' or 'updated'
            - 'file_action' (str or None): 'committed', 'deleted' or 'absent'
            - 'feedback_file' (str): path actually written, "" otherwise
    """
    result = {
        "comment_id": None,
        "comment_action": None,
        "file_action": None,
        "feedback_file": "",
    }

    if post_comment:
        comment = post_or_update_comment(gh, pr_number, markdown)
        result["comment_id"] = comment["id"]
        result["comment_action"] = comment["action"]

    if feedback_file:
        if open_count == 0:
            deleted = delete_feedback_file(gh, branch, feedback_file, pr_number)
            result["file_action"] = "deleted" if deleted else "absent"
        else:
            commit_feedback_file(gh, branch, feedback_file, markdown, pr_number)
            result["file_action"] = "committed"
            result["feedback_file"] = feedback_file

    return result


def find_existing_comment(gh: GitHubAPI, pr_number: int) -> Optional[int]:
    """Return the id of the first PR comment carrying FEEDBACK_MARKER, if any."""
    for comment in gh.list_issue_comments(pr_number):
        if FEEDBACK_MARKER in (comment.get("body") or ""):
            return comment["id"]
    return None


def post_or_update_comment(gh: GitHubAPI, pr_number: int, markdown: str) -> dict:
    """
    Upsert the feedback comment.

    Returns:
        dict with 'id' (int) and 'action' ('created' or 'updated').
    """
    body = f"{FEEDBACK_MARKER}\n{markdown}"
    existing_id = find_existing_comment(gh, pr_number)

    if existing_id:
        gh.update_comment(existing_id, body)
        logger.info("Updated existing comment %s", existing_id)
        return {"id": existing_id, "action": "updated"}

    created = gh.create_comment(pr_number, body)
    logger.info("Created new comment")
    return {"id": created.get("id"), "action": "created"}


def commit_feedback_file(
    gh: GitHubAPI,
    branch: str,
    file_path: str,
    content: str,
    pr_number: int
) -> dict:
    sha = gh.get_file_sha(file_path, branch)
    response = gh.create_or_update_file(
        path=file_path,
        content=content,
        message=f"chore: update review feedback for PR #{pr_number} [skip ci]",
        branch=branch,
        sha=sha,
    )
    logger.info("Committed feedback file to %s", file_path)
    return response


def delete_feedback_file(gh: GitHubAPI, branch: str, file_path: str, pr_number: int) -> bool:
    """Delete the feedback file if it exists. Returns True if a delete happened."""
    sha = gh.get_file_sha(file_path, branch)
    if sha is None:
        return False

    gh.delete_file(
        path=file_path,
        message=f"chore: remove review feedback (all resolved) for PR #{pr_number} [skip ci]",
        sha=sha,
        branch=branch,
    )
    logger.info("Deleted feedback file %s", file_path)
    return True
