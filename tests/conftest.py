"""Shared fixtures for the feedback pipeline tests."""

import pytest

from feedback_agent.models import Comment, Review, SOURCE_INLINE


@pytest.fixture
def make_comment():
    """Factory for Comment with sensible defaults."""
    def _make(id, path="src/a.go", line=1, body="Fix this", author="alice",
              resolved=False, source=SOURCE_INLINE):
        return Comment(
            id=id,
            path=path,
            line=line,
            body=body,
            author=author,
            url=f"https://github.com/o/r/pull/1#discussion_r{id}",
            created_at="2026-01-01T00:00:00Z",
            resolved=resolved,
            source=source,
        )
    return _make


@pytest.fixture
def make_review():
    """Factory for Review with sensible defaults."""
    def _make(id, body="This needs a couple of changes before merge.", author="dave",
              state="CHANGES_REQUESTED"):
        return Review(
            id=id,
            body=body,
            author=author,
            state=state,
            url=f"https://github.com/o/r/pull/1#pullrequestreview-{id}",
            submitted_at="2026-01-01T00:00:00Z",
        )
    return _make
