"""
Action Configuration — PR Review Feedback

Reads the action inputs and the GitHub Actions runner context from the
environment. action.yml maps each input to an INPUT_* variable:

    INPUT_GITHUB_TOKEN      token for all API calls (falls back to GITHUB_TOKEN)
    INPUT_FEEDBACK_FILE     repo path of the committed document ("" disables it)
    INPUT_POST_COMMENT      "true" to create/update the PR comment
    INPUT_INCLUDE_RESOLVED  "true" to list resolved items in the document
    INPUT_PR_NUMBER         optional override, e.g. for workflow_dispatch runs
    INPUT_LOG_LEVEL         DEBUG, INFO, WARNING, ERROR

Runner context used:

    GITHUB_REPOSITORY   "owner/repo"
    GITHUB_EVENT_PATH   JSON event payload (pull_request.number / issue.number)
    GITHUB_API_URL      REST base URL (GitHub Enterprise Server support)
    GITHUB_GRAPHQL_URL  GraphQL endpoint
    GITHUB_OUTPUT       file the action outputs are appended to
"""

import json
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from feedback_agent.errors import FeedbackConfigError
from feedback_agent.github_api import DEFAULT_API_URL, DEFAULT_GRAPHQL_URL

DEFAULT_FEEDBACK_FILE = "REVIEW_FEEDBACK.md"
DEFAULT_LOG_LEVEL = "INFO"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass(frozen=True)
class ActionConfig:
    token: str
    owner: str
    repo: str
    pr_number: int
    feedback_file: str = DEFAULT_FEEDBACK_FILE
    post_comment: bool = True
    include_resolved: bool = True
    api_url: str = DEFAULT_API_URL
    graphql_url: str = DEFAULT_GRAPHQL_URL
    log_level: str = DEFAULT_LOG_LEVEL
    output_path: Optional[str] = None


def load_action_config(environ: Mapping[str, str] = os.environ) -> ActionConfig:
    """
    Build the ActionConfig from the environment.

    Raises:
        FeedbackConfigError: if the token, the repository or the PR number
        cannot be determined.
    """
    token = _input(environ, "GITHUB_TOKEN") or environ.get("GITHUB_TOKEN", "")
    if not token:
        raise FeedbackConfigError("Input 'github-token' is required")

    repository = environ.get("GITHUB_REPOSITORY", "")
    owner, _, repo = repository.partition("/")
    if not owner or not repo:
        raise FeedbackConfigError(f"GITHUB_REPOSITORY must be 'owner/repo', got '{repository}'")

    log_level = (_input(environ, "LOG_LEVEL", DEFAULT_LOG_LEVEL) or DEFAULT_LOG_LEVEL).strip().upper()
    if log_level not in VALID_LOG_LEVELS:
        raise FeedbackConfigError(f"Input 'log-level' must be one of {', '.join(VALID_LOG_LEVELS)}, got '{log_level}'")

    return ActionConfig(
        token=token,
        owner=owner,
        repo=repo,
        pr_number=_resolve_pr_number(environ),
        feedback_file=_input(environ, "FEEDBACK_FILE", DEFAULT_FEEDBACK_FILE).strip(),
        post_comment=parse_bool_input(_input(environ, "POST_COMMENT", "true")),
        include_resolved=parse_bool_input(_input(environ, "INCLUDE_RESOLVED", "true")),
        api_url=environ.get("GITHUB_API_URL") or DEFAULT_API_URL,
        graphql_url=environ.get("GITHUB_GRAPHQL_URL") or DEFAULT_GRAPHQL_URL,
        log_level=log_level,
        output_path=environ.get("GITHUB_OUTPUT") or None,
    )


def parse_bool_input(value: Optional[str]) -> bool:
    # Same rule as core.getInput(...) === 'true': anything else is false.
    return (value or "").strip().lower() == "true"


def _input(environ: Mapping[str, str], name: str, default: str = "") -> str:
    return environ.get(f"INPUT_{name}", default)


def _resolve_pr_number(environ: Mapping[str, str]) -> int:
    override = _input(environ, "PR_NUMBER").strip()
    if override:
        try:
            return int(override)
        except ValueError:
            raise FeedbackConfigError(f"Input 'pr-number' must be an integer, got '{override}'")

    event_path = environ.get("GITHUB_EVENT_PATH")
    if event_path and os.path.exists(event_path):
        try:
            with open(event_path, "r") as f:
                payload = json.load(f)
        except json.JSONDecodeError as e:
            raise FeedbackConfigError(f"Could not parse event payload {event_path}: {e}")

        pr_number = (
            (payload.get("pull_request") or {}).get("number")
            or (payload.get("issue") or {}).get("number")
        )
        if pr_number:
            return int(pr_number)

    raise FeedbackConfigError("Could not determine PR number from context")
