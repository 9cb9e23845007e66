"""
Feedback Pipeline Main — PR Review Feedback

PURPOSE:
    Entry point of the GitHub Action. Runs the seven stages in order for one
    PR and writes the action outputs:

        open-count      number of open (unresolved) comments
        resolved-count  number of resolved comments
        feedback-file   path of the committed file, "" if none was written

    Invoked from action.yml as the `pr-review-feedback` console script, or
    locally with `python -m feedback_agent.feedback_pipeline_main`.

ERROR HANDLING:
    - A failed review-thread query is downgraded to a warning (stage 4).
    - Every other failure (bad config, any non-404 GitHub error) aborts
      the run with an ::error:: annotation and exit status 1. All reads
      happen before the first write, so a failed fetch publishes nothing.
"""

import logging
import sys
from typing import Mapping, Optional

import requests

from feedback_agent.config import ActionConfig, load_action_config
from feedback_agent.errors import FeedbackAgentError
from feedback_agent.github_api import GitHubAPI
from feedback_agent.stage_1_normalize_comments import normalize_sources
from feedback_agent.stage_3_filter_noise import filter_noise
from feedback_agent.stage_4_reconcile_resolution import reconcile_resolution
from feedback_agent.stage_5_aggregate_feedback import aggregate_feedback
from feedback_agent.stage_6_render_markdown import render_feedback_markdown
from feedback_agent.stage_7_publish_feedback import publish_feedback

logger = logging.getLogger(__name__)


class GitHubActionsFormatter(logging.Formatter):
    """
    Format WARNING/ERROR records as workflow commands so they show up as
    annotations on the run summary. Lower levels are printed as plain lines.
    """

    COMMANDS = {
        logging.WARNING: "warning",
        logging.ERROR: "error",
        logging.CRITICAL: "error",
    }

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        command = self.COMMANDS.get(record.levelno)
        if command is None:
            return message
        # Workflow commands are single-line; GitHub decodes %0A back to a newline.
        return f"::{command}::" + message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def run_feedback_pipeline(config: ActionConfig, gh: Optional[GitHubAPI] = None) -> dict:
    """
    Run stages 1-7 for config.pr_number.

    Returns:
        dict with keys 'open_count', 'resolved_count', 'feedback_file',
        'markdown' and 'publish' (the stage 7 result dict).
    """
    if gh is None:
        gh = GitHubAPI(
            config.owner,
            config.repo,
            config.token,
            api_url=config.api_url,
            graphql_url=config.graphql_url,
        )
    pr_number = config.pr_number

    # -----------------------------------------------------------------------
    # FETCH everything up front (no side effects yet)
    # -----------------------------------------------------------------------

    pr = gh.get_pull_request(pr_number)
    branch = pr["head"]["ref"]
    logger.info("Processing PR #%s: %s", pr_number, pr.get("title", ""))

    raw_review_comments = gh.list_review_comments(pr_number)
    raw_reviews = gh.list_reviews(pr_number)
    raw_issue_comments = gh.list_issue_comments(pr_number)

    # -----------------------------------------------------------------------
    # STAGES 1-3: normalize, extract, filter
    # -----------------------------------------------------------------------

    normalized = normalize_sources(raw_review_comments, raw_reviews, raw_issue_comments)
    if normalized["structured_count"] > 0:
        logger.info("Found %d Greptile comments from issue comments", normalized["structured_count"])

    filtered = filter_noise(normalized["comments"], normalized["reviews"])
    if filtered["dropped"] > 0:
        logger.info("Ignored %d bot notice(s)", filtered["dropped"])

    # -----------------------------------------------------------------------
    # STAGE 4: resolution status (degrades to all-open on failure)
    # -----------------------------------------------------------------------

    reconciliation = reconcile_resolution(
        filtered["comments"],
        lambda: gh.list_review_threads(pr_number),
    )
    if not reconciliation["success"]:
        logger.warning(reconciliation["error"])

    # -----------------------------------------------------------------------
    # STAGES 5-6: aggregate and render
    # -----------------------------------------------------------------------

    snapshot = aggregate_feedback(
        pr_number=pr_number,
        pr_title=pr.get("title", ""),
        pr_url=pr.get("html_url", ""),
        comments=reconciliation["comments"],
        reviews=filtered["reviews"],
    )
    logger.info("Found %d open, %d resolved comments", snapshot.open_count, snapshot.resolved_count)

    markdown = render_feedback_markdown(snapshot, config.include_resolved)

    # -----------------------------------------------------------------------
    # STAGE 7: publish
    # -----------------------------------------------------------------------

    publish_result = publish_feedback(
        gh=gh,
        pr_number=pr_number,
        branch=branch,
        markdown=markdown,
        open_count=snapshot.open_count,
        post_comment=config.post_comment,
        feedback_file=config.feedback_file,
    )

    return {
        "open_count": snapshot.open_count,
        "resolved_count": snapshot.resolved_count,
        "feedback_file": publish_result["feedback_file"],
        "markdown": markdown,
        "publish": publish_result,
    }


def write_action_outputs(output_path: Optional[str], outputs: Mapping[str, object]):
    """Append key=value lines to $GITHUB_OUTPUT. No-op outside Actions."""
    if not output_path:
        return
    with open(output_path, "a") as f:
        for key, value in outputs.items():
            f.write(f"{key}={value}\n")


def configure_logging(level: str = "INFO") -> logging.Logger:
    """
    Send the package's log records to stdout, where the runner picks up
    workflow commands. Safe to call more than once.
    """
    package_logger = logging.getLogger("feedback_agent")
    for handler in list(package_logger.handlers):
        if isinstance(handler.formatter, GitHubActionsFormatter):
            package_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(GitHubActionsFormatter("%(message)s"))
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    return package_logger


def main(environ: Optional[Mapping[str, str]] = None) -> int:
    """Console entry point. Returns the process exit status."""
    package_logger = configure_logging()

    try:
        config = load_action_config(environ) if environ is not None else load_action_config()
        package_logger.setLevel(config.log_level)

        result = run_feedback_pipeline(config)
    except (FeedbackAgentError, requests.RequestException) as e:
        logger.error(str(e))
        return 1

    write_action_outputs(config.output_path, {
        "open-count": result["open_count"],
        "resolved-count": result["resolved_count"],
        "feedback-file": result["feedback_file"],
    })
    logger.info("Done!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
