"""
GitHub API Client — PR Review Feedback

Thin wrapper around the GitHub REST and GraphQL APIs for the calls the
pipeline needs. Uses the token provided to the action, which must have:
    - pull-requests:read (reviews, review comments, review threads)
    - issues:write       (list/create/update PR comments)
    - contents:write     (commit/delete the feedback file on the PR branch)

Every method raises requests.HTTPError on a non-2xx response. The one
exception is get_file_sha(), which treats 404 as "file does not exist".
List endpoints follow the Link header until the last page, 100 items per page.
"""

import base64
import logging
from typing import List, Optional

import requests

from feedback_agent.errors import GitHubAPIError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_GRAPHQL_URL = "https://api.github.com/graphql"
REQUEST_TIMEOUT = 30
PER_PAGE = 100

# First comment of each thread is enough: its databaseId is the REST id of
# the comment that opened the thread.
REVIEW_THREADS_QUERY = """
query($owner: String!, $repo: String!, $prNumber: Int!, $cursor: String) {
  repository(owner: $owner, name: $repo) {
    pullRequest(number: $prNumber) {
      reviewThreads(first: 100, after: $cursor) {
        pageInfo { hasNextPage endCursor }
        nodes {
          isResolved
          comments(first: 1) {
            nodes {
              databaseId
            }
          }
        }
      }
    }
  }
}
"""


class GitHubAPI:
    """REST + GraphQL client bound to one repository."""

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str,
        api_url: str = DEFAULT_API_URL,
        graphql_url: str = DEFAULT_GRAPHQL_URL
    ):
        self.owner = owner
        self.repo = repo
        self.base_url = f"{api_url.rstrip('/')}/repos/{owner}/{repo}"
        self.graphql_url = graphql_url
        self.session = requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        })

    # -----------------------------------------------------------------------
    # PULL REQUEST DATA
    # -----------------------------------------------------------------------

    def get_pull_request(self, pr_number: int) -> dict:
        """Get PR metadata (title, html_url, head.ref, ...)."""
        resp = self.session.get(f"{self.base_url}/pulls/{pr_number}", timeout=REQUEST_TIMEOUT)
        resp.raise_for_status()
        return resp.json()

    def list_review_comments(self, pr_number: int) -> List[dict]:
        """List inline review comments on the PR diff."""
        return self._get_paginated(f"{self.base_url}/pulls/{pr_number}/comments")

    def list_reviews(self, pr_number: int) -> List[dict]:
        """List top-level review submissions."""
        return self._get_paginated(f"{self.base_url}/pulls/{pr_number}/reviews")

    def list_issue_comments(self, pr_number: int) -> List[dict]:
        """List PR-level conversation comments (the "issue" side of a PR)."""
        return self._get_paginated(f"{self.base_url}/issues/{pr_number}/comments")

    def list_review_threads(self, pr_number: int) -> List[dict]:
        """
        Query review thread resolution via GraphQL.

        Returns:
            list of {"is_resolved": bool, "anchor_id": int or None}, one per
            thread. anchor_id is the REST id of the thread's first comment.
        """
        threads = []
        cursor = None

        while True:
            data = self._graphql(REVIEW_THREADS_QUERY, {
                "owner": self.owner,
                "repo": self.repo,
                "prNumber": pr_number,
                "cursor": cursor,
            })
            try:
                review_threads = data["repository"]["pullRequest"]["reviewThreads"]
            except (KeyError, TypeError) as e:
                raise GitHubAPIError(f"Unexpected reviewThreads payload: missing {e}") from e

            for node in review_threads.get("nodes") or []:
                first_comments = (node.get("comments") or {}).get("nodes") or []
                threads.append({
                    "is_resolved": bool(node.get("isResolved")),
                    "anchor_id": first_comments[0].get("databaseId") if first_comments else None,
                })

            page_info = review_threads.get("pageInfo") or {}
            if not page_info.get("hasNextPage"):
                break
            cursor = page_info.get("endCursor")

        return threads

    # -----------------------------------------------------------------------
    # PR COMMENTS
    # -----------------------------------------------------------------------

    def create_comment(self, issue_number: int, body: str) -> dict:
        """Post a comment on the PR conversation."""
        url = f"{self.base_url}/issues/{issue_number}/comments"
        resp = self.session.post(url, json={"body": body}, timeout=REQUEST_TIMEOUT)
        resp.raise_for_status()
        return resp.json()

    def update_comment(self, comment_id: int, body: str) -> dict:
        """Replace the body of an existing PR comment."""
        url = f"{self.base_url}/issues/comments/{comment_id}"
        resp = self.session.patch(url, json={"body": body}, timeout=REQUEST_TIMEOUT)
        resp.raise_for_status()
        return resp.json()

    # -----------------------------------------------------------------------
    # REPOSITORY CONTENTS
    # -----------------------------------------------------------------------

    def get_file_sha(self, path: str, ref: str) -> Optional[str]:
        """
        Get the blob SHA of a file on a branch.

        Returns None if the file does not exist (404) or the path is a
        directory. Any other error status is raised.
        """
        url = f"{self.base_url}/contents/{path}"
        resp = self.session.get(url, params={"ref": ref}, timeout=REQUEST_TIMEOUT)
        if resp.status_code == 404:
            return None
        resp.raise_for_status()

        data = resp.json()
        if isinstance(data, dict):
            return data.get("sha")
        return None

    def create_or_update_file(
        self,
        path: str,
        content: str,
        message: str,
        branch: str,
        sha: Optional[str] = None
    ) -> dict:
        """
        Create or update a file on the given branch.
        Content is automatically base64-encoded. Pass the current blob sha
        when updating; GitHub rejects an update without it (409/422).
        """
        url = f"{self.base_url}/contents/{path}"
        encoded = base64.b64encode(content.encode("utf-8")).decode("ascii")

        data = {
            "message": message,
            "content": encoded,
            "branch": branch,
        }
        if sha:
            data["sha"] = sha

        resp = self.session.put(url, json=data, timeout=REQUEST_TIMEOUT)
        resp.raise_for_status()
        return resp.json()

    def delete_file(self, path: str, message: str, sha: str, branch: str) -> dict:
        """Delete a file on the given branch. sha must be the current blob sha."""
        url = f"{self.base_url}/contents/{path}"
        data = {"message": message, "sha": sha, "branch": branch}
        resp = self.session.delete(url, json=data, timeout=REQUEST_TIMEOUT)
        resp.raise_for_status()
        return resp.json()

    # -----------------------------------------------------------------------
    # INTERNALS
    # -----------------------------------------------------------------------

    def _get_paginated(self, url: str) -> List[dict]:
        items = []
        params = {"per_page": PER_PAGE}

        while url:
            logger.debug("GET %s", url)
            resp = self.session.get(url, params=params, timeout=REQUEST_TIMEOUT)
            resp.raise_for_status()
            items.extend(resp.json())

            # The "next" link already carries per_page and page.
            url = resp.links.get("next", {}).get("url")
            params = None

        return items

    def _graphql(self, query: str, variables: dict) -> dict:
        resp = self.session.post(
            self.graphql_url,
            json={"query": query, "variables": variables},
            timeout=REQUEST_TIMEOUT,
        )
        resp.raise_for_status()
        payload = resp.json()

        if payload.get("errors"):
            messages = "; ".join(err.get("message", str(err)) for err in payload["errors"])
            raise GitHubAPIError(f"GraphQL query failed: {messages}")

        return payload.get("data") or {}
