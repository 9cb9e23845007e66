"""Unit tests for resolution reconciliation against review threads."""

from feedback_agent.models import SOURCE_STRUCTURED
from feedback_agent.stage_4_reconcile_resolution import reconcile_resolution


def test_only_anchor_comment_becomes_resolved(make_comment):
    """Test that a resolved thread anchor marks exactly one matching comment."""
    comments = [make_comment(1), make_comment(2), make_comment(3)]
    threads = [
        {"is_resolved": True, "anchor_id": 2},
        {"is_resolved": False, "anchor_id": 1},
        {"is_resolved": True, "anchor_id": 999},
    ]

    result = reconcile_resolution(comments, lambda: threads)

    assert result["success"] is True
    assert result["error"] is None
    assert [c.resolved for c in result["comments"]] == [False, True, False]
    assert result["resolved_ids"] == {2, 999}


def test_query_failure_leaves_comments_unchanged(make_comment):
    """Test that a failing thread query skips reconciliation entirely."""
    comments = [make_comment(1), make_comment(2)]

    def failing_query():
        raise RuntimeError("Resource not accessible by integration")

    result = reconcile_resolution(comments, failing_query)

    assert result["success"] is False
    assert "Resource not accessible by integration" in result["error"]
    assert result["comments"] is comments
    assert [c.resolved for c in result["comments"]] == [False, False]


def test_structured_comments_are_never_resolved(make_comment):
    """Test that an extracted comment whose id collides with an anchor stays open."""
    comments = [make_comment(7, source=SOURCE_STRUCTURED)]

    result = reconcile_resolution(comments, lambda: [{"is_resolved": True, "anchor_id": 7}])

    assert result["comments"][0].resolved is False


def test_threads_without_anchor_are_ignored(make_comment):
    comments = [make_comment(1)]

    result = reconcile_resolution(comments, lambda: [{"is_resolved": True, "anchor_id": None}])

    assert result["success"] is True
    assert result["comments"][0].resolved is False


def test_input_comments_are_not_mutated(make_comment):
    original = make_comment(1)

    result = reconcile_resolution([original], lambda: [{"is_resolved": True, "anchor_id": 1}])

    assert result["comments"][0].resolved is True
    assert original.resolved is False
