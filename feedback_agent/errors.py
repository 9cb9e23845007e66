"""
Error Types — PR Review Feedback

Exceptions raised by the feedback pipeline. HTTP failures from the GitHub REST
API are NOT wrapped: they surface as requests.HTTPError from raise_for_status()
so the entry point can report the status code and URL as-is.
"""


class FeedbackAgentError(Exception):
    """Base class for all feedback pipeline errors."""


class FeedbackConfigError(FeedbackAgentError):
    """Missing or invalid action input or runner context (e.g. no PR number)."""


class GitHubAPIError(FeedbackAgentError):
    """GraphQL error payload or a response shape the pipeline cannot read."""
