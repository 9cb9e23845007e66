"""
Stage 2: Extract Structured Blocks — PR Review Feedback

PURPOSE:
    Greptile does not always post its findings as inline review comments.
    Often it posts one big PR-level (issue) comment that contains several
    collapsible "Prompt To Fix With AI" sections, each one describing a single
    finding with a file path, a line and the comment text. This stage pulls
    those findings out and turns each one into a Comment, so they show up in
    the checklist next to the regular inline comments.

CALLED BY:
    stage_1_normalize_comments.normalize_issue_comment: only for comments
    authored by a known structured bot (see STRUCTURED_BOT_LOGINS).

BLOCK GRAMMAR:
    Matching is case-insensitive. One block looks like:

        <details><summary>Prompt To Fix With AI</summary>
        ```markdown                  <- 3 to 5 backticks
        Path: src/app/handler.go     <- required, rest of the line
        Line: 42:48                  <- optional, "N" or "N:M", first number wins
        Comment:                     <- required
        The error from Close() is ignored...
        How can I resolve this? ...  <- optional trailer, cut off
        ```
        </details>

    - Every non-overlapping block in the body is scanned, in order.
    - A block without "Path:" or without "Comment:" is skipped. This is not
      an error, and scanning continues with the next block.
    - Comment text runs until "How can I resolve" or the end of the block.

IDS:
    Extracted comments don't have their own GitHub id. We use
    source_id + (number of blocks accepted so far) so that several findings
    from the same issue comment stay unique within one run.
"""

import re
from typing import List

from feedback_agent.models import Comment, SOURCE_STRUCTURED

# Bot logins whose issue comments carry structured blocks, and the phrase
# that marks a comment as worth scanning at all.
STRUCTURED_BOT_LOGINS = frozenset({"greptile-apps[bot]"})
STRUCTURED_BLOCK_MARKER = "Prompt To Fix With AI"

_BLOCK_RE = re.compile(
    r"<details><summary>Prompt To Fix With AI</summary>\s*"
    r"`{3,5}markdown\s*(.*?)`{3,5}\s*</details>",
    re.IGNORECASE | re.DOTALL,
)
_PATH_RE = re.compile(r"Path:\s*(.+)", re.IGNORECASE)
_LINE_RE = re.compile(r"Line:\s*(\d+)(?::\d+)?", re.IGNORECASE)
_COMMENT_RE = re.compile(r"Comment:\s*(.*?)(?:How can I resolve|\Z)", re.IGNORECASE | re.DOTALL)


def extract_structured_comments(
    source_id: int,
    body: str,
    author: str,
    url: str,
    created_at: str
) -> List[Comment]:
    """
    Parse every "Prompt To Fix With AI" block in a comment body.

    This is the ONLY public function in this file.

    Args:
        source_id: GitHub id of the issue comment the body came from
        body: The raw Markdown body of that comment
        author: Login of the comment author (e.g. "greptile-apps[bot]")
        url: Permalink of the issue comment. All extracted findings share it.
        created_at: ISO-8601 creation timestamp of the issue comment

    Returns:
        List of Comment (source="structured", resolved=False), one per
        accepted block, in body order. Empty if nothing matched.
    """
    comments: List[Comment] = []

    for block_match in _BLOCK_RE.finditer(body or ""):
        block = block_match.group(1)

        path_match = _PATH_RE.search(block)
        comment_match = _COMMENT_RE.search(block)
        if not path_match or not comment_match:
            continue

        line_match = _LINE_RE.search(block)
        line = int(line_match.group(1)) if line_match else None

        comments.append(Comment(
            id=source_id + len(comments),
            path=path_match.group(1).strip(),
            line=line,
            body=comment_match.group(1).strip(),
            author=author,
            url=url,
            created_at=created_at,
            resolved=False,
            source=SOURCE_STRUCTURED,
        ))

    return comments
