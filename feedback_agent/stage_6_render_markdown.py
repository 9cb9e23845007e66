"""
Stage 6: Render Markdown — PR Review Feedback

PURPOSE:
    Format the FeedbackSnapshot as the Markdown document that gets posted as
    a PR comment and committed to the PR branch. The main reader is an AI
    coding assistant working on the branch, so the document is a plain
    checklist. Each unchecked item carries the file, the line, the reviewer
    and the exact feedback text.

DOCUMENT LAYOUT (fixed order):
    1. "# PR #N Review Feedback"
    2. Callout for AI assistants + PR link + last-updated timestamp
    3. Status line: open count, plus resolved count when include_resolved
    4. "## Open Issues", one "### `path`" per file group
       (or "## No Open Issues" when nothing is open)
    5. "## Resolved", struck-through checked items (include_resolved only)
    6. "## Review Summaries", one subsection per review (if any)

DESIGN DECISIONS:
    - This is a pure function. The timestamp comes from the snapshot, never
      from the clock, so the same snapshot always renders byte-identical
      output.
    - Comment bodies are quoted line by line ("  > ") instead of being pasted
      raw. Otherwise a reviewer's own headings and lists would break the
      checklist structure.
"""

from typing import List

from feedback_agent.models import FeedbackSnapshot
from feedback_agent.stage_5_aggregate_feedback import group_by_file


def render_feedback_markdown(snapshot: FeedbackSnapshot, include_resolved: bool) -> str:
    """
    Render the feedback document.

    This is the ONLY public function in this file.

    Args:
        snapshot: Output of stage 5
        include_resolved: Whether to mention and list resolved comments

    Returns:
        The Markdown document as a single string (no hidden marker; the
        publisher adds that for the PR comment).
    """
    lines: List[str] = []

    lines.append(f"# PR #{snapshot.pr_number} Review Feedback")
    lines.append("")
    lines.append("> **For AI coding assistants:** Fix all unchecked items below. Each item includes")
    lines.append("> the file path, line number, reviewer, and their feedback.")
    lines.append(">")
    lines.append(f"> **PR:** [{snapshot.pr_title}]({snapshot.pr_url})")
    lines.append(f"> **Last updated:** {snapshot.updated_at}")
    lines.append("")

    open_count = snapshot.open_count
    resolved_count = snapshot.resolved_count

    status = f"**Status:** {open_count} open issue{'' if open_count == 1 else 's'}"
    if include_resolved and resolved_count > 0:
        status += f" | {resolved_count} resolved"
    lines.append(status)
    lines.append("")
    lines.append("---")
    lines.append("")

    # -----------------------------------------------------------------------
    # OPEN ISSUES, grouped by file
    # -----------------------------------------------------------------------

    if open_count > 0:
        lines.append("## Open Issues")
        lines.append("")

        for file_path, comments in group_by_file(snapshot.open_comments).items():
            lines.append(f"### `{file_path}`")
            lines.append("")

            for comment in comments:
                line_info = f"Line {comment.line}" if comment.line else "General"
                lines.append(f"- [ ] **{line_info}** · @{comment.author}")
                lines.append("")
                lines.extend(_quote(comment.body, prefix="  > "))
                lines.append("")
    else:
        lines.append("## No Open Issues")
        lines.append("")
        lines.append("All review comments have been resolved!")
        lines.append("")

    # -----------------------------------------------------------------------
    # RESOLVED (optional)
    # -----------------------------------------------------------------------

    if include_resolved and resolved_count > 0:
        lines.append("---")
        lines.append("")
        lines.append("## Resolved")
        lines.append("")

        for comment in snapshot.resolved_comments:
            location = f"{comment.path}:{comment.line}" if comment.line else comment.path
            lines.append(f"- [x] ~~`{location}` · @{comment.author}~~")
        lines.append("")

    # -----------------------------------------------------------------------
    # REVIEW SUMMARIES (high-level feedback)
    # -----------------------------------------------------------------------

    if snapshot.reviews:
        lines.append("---")
        lines.append("")
        lines.append("## Review Summaries")
        lines.append("")

        for review in snapshot.reviews:
            lines.append(f"### @{review.author} ({_humanize_state(review.state)})")
            lines.append("")
            lines.extend(_quote(review.body, prefix="> "))
            lines.append("")

    return "\n".join(lines)


def _quote(text: str, prefix: str) -> List[str]:
    return [f"{prefix}{body_line}" for body_line in text.split("\n")]


def _humanize_state(state: str) -> str:
    """CHANGES_REQUESTED -> "changes requested"."""
    return state.lower().replace("_", " ")
