"""
Integration tests for the full pipeline with a mocked GitHubAPI.

These run stages 1-7 end to end: raw GitHub payloads in, publish calls and
action outputs out.
"""

import logging
from unittest.mock import Mock, patch

import pytest
import requests

from feedback_agent.config import ActionConfig
from feedback_agent.feedback_pipeline_main import (
    GitHubActionsFormatter,
    main,
    run_feedback_pipeline,
    write_action_outputs,
)
from feedback_agent.stage_7_publish_feedback import FEEDBACK_MARKER

GREPTILE_BODY = (
    "<details><summary>Prompt To Fix With AI</summary>\n"
    "```markdown\nPath: src/c.go\nLine: 3\nComment:\nUnused import.\n```\n</details>"
)


def _raw_comment(id, path, line, author, body="Please fix"):
    return {
        "id": id, "path": path, "line": line, "body": body,
        "user": {"login": author},
        "html_url": f"https://github.com/o/r/pull/123#discussion_r{id}",
        "created_at": "2026-01-01T00:00:00Z",
    }


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Drop the stdout handler main() installs so it does not outlive capsys."""
    yield
    package_logger = logging.getLogger("feedback_agent")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture
def gh():
    mock = Mock()
    mock.get_pull_request.return_value = {
        "number": 123,
        "title": "Improve parser",
        "html_url": "https://github.com/o/r/pull/123",
        "head": {"ref": "feature/parser"},
    }
    mock.list_review_comments.return_value = [
        _raw_comment(1, "src/a.go", 10, "alice"),
        _raw_comment(2, "src/a.go", 5, "bob"),
        _raw_comment(3, "src/b.go", 1, "carol"),
        _raw_comment(4, "src/a.go", 20, "coderabbitai[bot]",
                     body="CodeRabbit: rate limit exceeded, review paused."),
    ]
    mock.list_reviews.return_value = [
        {"id": 50, "body": "Good direction, a few issues inline.", "state": "COMMENTED",
         "user": {"login": "dave"}, "html_url": "r50", "submitted_at": "2026-01-01T00:00:00Z"},
    ]
    mock.list_issue_comments.return_value = [
        {"id": 900, "body": GREPTILE_BODY, "user": {"login": "greptile-apps[bot]"},
         "html_url": "ic900", "created_at": "2026-01-01T00:00:00Z"},
    ]
    mock.list_review_threads.return_value = [
        {"is_resolved": True, "anchor_id": 3},
        {"is_resolved": False, "anchor_id": 1},
    ]
    mock.create_comment.return_value = {"id": 1000}
    mock.get_file_sha.return_value = None
    return mock


def _config(**overrides):
    values = dict(token="t", owner="o", repo="r", pr_number=123)
    values.update(overrides)
    return ActionConfig(**values)


def test_pipeline_end_to_end(gh):
    result = run_feedback_pipeline(_config(), gh=gh)

    assert result["open_count"] == 3
    assert result["resolved_count"] == 1
    assert result["feedback_file"] == "REVIEW_FEEDBACK.md"

    markdown = result["markdown"]
    assert "**Status:** 3 open issues | 1 resolved" in markdown
    assert markdown.index("### `src/a.go`") < markdown.index("### `src/c.go`")
    assert markdown.index("**Line 5** · @bob") < markdown.index("**Line 10** · @alice")
    assert "- [x] ~~`src/b.go:1` · @carol~~" in markdown
    assert "rate limit" not in markdown
    assert "### @dave (commented)" in markdown

    gh.list_review_threads.assert_called_once_with(123)
    gh.create_comment.assert_called_once_with(123, f"{FEEDBACK_MARKER}\n{markdown}")
    assert gh.create_or_update_file.call_args.kwargs["branch"] == "feature/parser"


def test_thread_query_failure_degrades_to_all_open(gh, caplog):
    gh.list_review_threads.side_effect = requests.HTTPError("502 Bad Gateway")

    with caplog.at_level(logging.WARNING):
        result = run_feedback_pipeline(_config(), gh=gh)

    assert result["open_count"] == 4
    assert result["resolved_count"] == 0
    assert "Could not fetch resolved status" in caplog.text
    gh.create_or_update_file.assert_called_once()


def test_all_resolved_deletes_file(gh):
    gh.list_review_comments.return_value = [_raw_comment(3, "src/b.go", 1, "carol")]
    gh.list_issue_comments.return_value = []
    gh.get_file_sha.return_value = "oldsha"

    result = run_feedback_pipeline(_config(), gh=gh)

    assert result["open_count"] == 0
    assert "## No Open Issues" in result["markdown"]
    gh.delete_file.assert_called_once()
    gh.create_or_update_file.assert_not_called()
    assert result["feedback_file"] == ""


def test_fetch_failure_publishes_nothing(gh):
    gh.list_reviews.side_effect = requests.HTTPError("500 Server Error")

    with pytest.raises(requests.HTTPError):
        run_feedback_pipeline(_config(), gh=gh)

    gh.create_comment.assert_not_called()
    gh.update_comment.assert_not_called()
    gh.create_or_update_file.assert_not_called()
    gh.delete_file.assert_not_called()


def test_write_action_outputs(tmp_path):
    output = tmp_path / "github_output"
    output.write_text("previous=1\n")

    write_action_outputs(str(output), {"open-count": 2, "feedback-file": ""})

    assert output.read_text() == "previous=1\nopen-count=2\nfeedback-file=\n"


def test_write_action_outputs_noop_without_path():
    write_action_outputs(None, {"open-count": 2})


def test_main_missing_pr_number_fails(capsys):
    status = main({"INPUT_GITHUB_TOKEN": "t", "GITHUB_REPOSITORY": "o/r"})

    assert status == 1
    assert "::error::Could not determine PR number from context" in capsys.readouterr().out


def test_main_writes_outputs(gh, tmp_path):
    output = tmp_path / "out"
    env = {
        "INPUT_GITHUB_TOKEN": "t",
        "GITHUB_REPOSITORY": "o/r",
        "INPUT_PR_NUMBER": "123",
        "GITHUB_OUTPUT": str(output),
    }

    with patch("feedback_agent.feedback_pipeline_main.GitHubAPI", return_value=gh):
        status = main(env)

    assert status == 0
    assert output.read_text() == "open-count=3\nresolved-count=1\nfeedback-file=REVIEW_FEEDBACK.md\n"


def test_formatter_emits_workflow_commands():
    formatter = GitHubActionsFormatter("%(message)s")

    def _record(level, msg):
        return logging.LogRecord("x", level, __file__, 1, msg, None, None)

    assert formatter.format(_record(logging.INFO, "hello")) == "hello"
    assert formatter.format(_record(logging.WARNING, "a\nb")) == "::warning::a%0Ab"
    assert formatter.format(_record(logging.ERROR, "100%")) == "::error::100%25"
